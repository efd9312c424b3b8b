import threading
from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..core.logging import get_logger
from ..models.Audit import GENESIS_HASH, AuditChainStatus, AuthAuditLog

logger = get_logger(__name__)


def log_event(
    db: Session,
    event: str,
    outcome: str,
    worker_id: Optional[int] = None,
    employee_id: Optional[str] = None,
    details: str = "",
) -> AuthAuditLog:
    """
    Appends a new entry to the authentication audit chain.
    """
    last_entry = db.exec(select(AuthAuditLog).order_by(AuthAuditLog.id.desc())).first()
    previous_hash = last_entry.current_hash if last_entry else GENESIS_HASH

    new_log = AuthAuditLog(
        worker_id=worker_id,
        employee_id=employee_id,
        event=event,
        outcome=outcome,
        details=details,
        previous_hash=previous_hash,
        current_hash="",  # Placeholder, calculated below
        timestamp=datetime.now(timezone.utc).replace(microsecond=0),
    )
    new_log.current_hash = new_log.calculate_hash()

    db.add(new_log)
    db.commit()
    db.refresh(new_log)
    return new_log


def verify_chain(db: Session) -> AuditChainStatus:
    """
    Recomputes every hash and checks each entry links to its predecessor.
    """
    entries = db.exec(select(AuthAuditLog).order_by(AuthAuditLog.id.asc())).all()
    previous_hash = GENESIS_HASH
    for entry in entries:
        if entry.previous_hash != previous_hash or entry.calculate_hash() != entry.current_hash:
            return AuditChainStatus(valid=False, entries=len(entries), first_broken_id=entry.id)
        previous_hash = entry.current_hash
    return AuditChainStatus(valid=True, entries=len(entries))


def get_audit_logs(db: Session, limit: int = 100) -> list[AuthAuditLog]:
    statement = select(AuthAuditLog).order_by(AuthAuditLog.id.desc()).limit(limit)
    return list(db.exec(statement).all())


class AuditTrail:
    """Async front for log_event used by the auth core."""

    def __init__(self, engine: Engine):
        self._engine = engine
        # Appends read the chain tail; serialize them so two writers never fork it.
        self._lock = threading.Lock()

    async def record(
        self,
        event: str,
        outcome: str,
        worker_id: Optional[int] = None,
        employee_id: Optional[str] = None,
        details: str = "",
    ) -> None:
        await run_in_threadpool(self._append, event, outcome, worker_id, employee_id, details)

    def _append(self, event, outcome, worker_id, employee_id, details) -> None:
        with self._lock, Session(self._engine) as session:
            log_event(session, event, outcome, worker_id=worker_id, employee_id=employee_id, details=details)
