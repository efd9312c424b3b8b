from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from ..auth.dependencies import require_permissions
from ..core.database import get_session
from ..core.responses import success
from ..models.Worker import Identity, WorkerCreate, WorkerResponse, WorkerUpdate
from .service import create_worker, delete_worker, get_all_workers, get_worker, update_worker

router = APIRouter(prefix="/api/workers", tags=["workers"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_new_worker(
    worker: WorkerCreate,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("create_worker")),
):
    """
    Create a new worker (requires create_worker).
    """
    db_worker = create_worker(session, worker)
    return success(WorkerResponse.model_validate(db_worker))


@router.get("")
def read_workers(
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("read_all")),
):
    """
    List workers (requires read_all).
    """
    workers = get_all_workers(session, limit=limit, offset=offset)
    return success([WorkerResponse.model_validate(w) for w in workers])


@router.get("/{worker_id}")
def read_worker(
    worker_id: int,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("read_all")),
):
    return success(WorkerResponse.model_validate(get_worker(session, worker_id)))


@router.put("/{worker_id}")
def edit_worker(
    worker_id: int,
    changes: WorkerUpdate,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("update_worker")),
):
    """
    Update a worker (requires update_worker). A role change takes effect on the
    worker's next request.
    """
    return success(WorkerResponse.model_validate(update_worker(session, worker_id, changes)))


@router.delete("/{worker_id}")
def remove_worker(
    worker_id: int,
    session: Session = Depends(get_session),
    current_worker: Identity = Depends(require_permissions("delete_worker")),
):
    """
    Delete a worker and revoke their refresh tokens (requires delete_worker).
    """
    delete_worker(session, worker_id, current_worker.worker_id)
    return success({"message": "Worker deleted successfully"})
