from fastapi import HTTPException, status
from sqlmodel import Session, select
from ..models.Program import Program, ProgramCreate, ProgramUpdate


def create_program(session: Session, program: ProgramCreate, created_by: int) -> Program:
    statement = select(Program).where(Program.name == program.name)
    existing_program = session.exec(statement).first()
    if existing_program:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Program with this name already exists"
        )

    db_program = Program(name=program.name, description=program.description, created_by=created_by)
    session.add(db_program)
    session.commit()
    session.refresh(db_program)
    return db_program


def get_all_programs(session: Session) -> list[Program]:
    statement = select(Program).order_by(Program.program_id)
    return list(session.exec(statement).all())


def update_program(session: Session, program_id: int, changes: ProgramUpdate) -> Program:
    program = session.get(Program, program_id)
    if not program:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Program not found"
        )

    data = changes.model_dump(exclude_unset=True)
    if data.get("name") is None:
        data.pop("name", None)
    elif data["name"] != program.name:
        statement = select(Program).where(Program.name == data["name"])
        if session.exec(statement).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Program with this name already exists"
            )

    program.sqlmodel_update(data)
    session.add(program)
    session.commit()
    session.refresh(program)
    return program


def delete_program(session: Session, program_id: int):
    program = session.get(Program, program_id)
    if not program:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Program not found"
        )
    session.delete(program)
    session.commit()
