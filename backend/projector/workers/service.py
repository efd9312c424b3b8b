from fastapi import HTTPException, status
from sqlalchemy import delete
from sqlmodel import Session, select

from ..auth.passwords import get_password_hash
from ..core.logging import get_logger
from ..models.RefreshToken import RefreshToken
from ..models.Role import OrganizationalRole
from ..models.Worker import Worker, WorkerCreate, WorkerUpdate

logger = get_logger(__name__)


def create_worker(session: Session, worker: WorkerCreate) -> Worker:
    statement = select(Worker).where(Worker.employee_id == worker.employee_id)
    if session.exec(statement).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID already registered")

    statement = select(Worker).where(Worker.email == worker.email)
    if session.exec(statement).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    if session.get(OrganizationalRole, worker.role_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role not found")

    db_worker = Worker(
        employee_id=worker.employee_id,
        full_name=worker.full_name,
        email=worker.email,
        password_hash=get_password_hash(worker.password),
        role_id=worker.role_id,
    )
    session.add(db_worker)
    session.commit()
    session.refresh(db_worker)
    logger.info("worker_created", worker_id=db_worker.worker_id, employee_id=db_worker.employee_id)
    return db_worker


def get_all_workers(session: Session, limit: int = 100, offset: int = 0) -> list[Worker]:
    statement = select(Worker).order_by(Worker.worker_id).offset(offset).limit(limit)
    return list(session.exec(statement).all())


def get_worker(session: Session, worker_id: int) -> Worker:
    db_worker = session.get(Worker, worker_id)
    if not db_worker:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worker not found")
    return db_worker


def update_worker(session: Session, worker_id: int, changes: WorkerUpdate) -> Worker:
    db_worker = get_worker(session, worker_id)
    data = changes.model_dump(exclude_unset=True, exclude_none=True)
    changed = sorted(data)

    if "email" in data and data["email"] != db_worker.email:
        statement = select(Worker).where(Worker.email == data["email"])
        if session.exec(statement).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    if "role_id" in data and session.get(OrganizationalRole, data["role_id"]) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role not found")

    if "password" in data:
        data["password_hash"] = get_password_hash(data.pop("password"))

    db_worker.sqlmodel_update(data)
    session.add(db_worker)
    session.commit()
    session.refresh(db_worker)
    # Role changes apply on the next authorized call; no token is reissued
    logger.info("worker_updated", worker_id=worker_id, fields=changed)
    return db_worker


def delete_worker(session: Session, worker_id: int, acting_worker_id: int) -> None:
    db_worker = get_worker(session, worker_id)
    if db_worker.worker_id == acting_worker_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Workers cannot delete themselves")

    # Outstanding refresh tokens die with the worker
    session.execute(delete(RefreshToken).where(RefreshToken.worker_id == worker_id))
    session.delete(db_worker)
    session.commit()
    logger.info("worker_deleted", worker_id=worker_id)
