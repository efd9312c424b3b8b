from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from ..auth.dependencies import require_permissions
from ..core.database import get_session
from ..core.responses import success
from ..models.Program import ProgramCreate, ProgramResponse, ProgramUpdate
from ..models.Worker import Identity
from .service import create_program, get_all_programs, delete_program, update_program

router = APIRouter(prefix="/api/programs", tags=["programs"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_new_program(
    program: ProgramCreate,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("create_program"))
):
    """
    Create a new program (requires create_program).
    """
    db_program = create_program(session, program, created_by=current_worker.worker_id)
    return success(ProgramResponse.model_validate(db_program))


@router.get("")
def read_programs(
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("read_all"))
):
    return success([ProgramResponse.model_validate(p) for p in get_all_programs(session)])


@router.put("/{program_id}")
def edit_program(
    program_id: int,
    changes: ProgramUpdate,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("update_program"))
):
    """
    Update a program's name or description (requires update_program).
    """
    return success(ProgramResponse.model_validate(update_program(session, program_id, changes)))


@router.delete("/{program_id}")
def remove_program(
    program_id: int,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("delete_program"))
):
    """
    Delete a program (requires delete_program).
    """
    delete_program(session, program_id)
    return success({"message": "Program deleted successfully"})
