from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..auth.dependencies import require_permissions
from ..core.database import get_session
from ..core.responses import success
from ..models.Worker import Identity
from .service import get_audit_logs, verify_chain

router = APIRouter(
    prefix="/api/audit",
    tags=["audit"],
)


@router.get("/log")
def read_audit_log(
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    session: Session = Depends(get_session),
    current_auditor: Identity = Depends(require_permissions("view_audit")),
):
    """
    Most recent authentication events, newest first.
    """
    return success(get_audit_logs(session, limit=limit))


@router.get("/verify")
def verify_audit_log(
    session: Session = Depends(get_session),
    current_auditor: Identity = Depends(require_permissions("view_audit")),
):
    return success(verify_chain(session))
