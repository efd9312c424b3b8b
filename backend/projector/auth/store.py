from datetime import datetime, timezone
from typing import Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..core.logging import get_logger
from ..models.RefreshToken import RefreshRecord, RefreshToken
from ..models.Role import OrganizationalRole
from ..models.Worker import Identity, Worker

logger = get_logger(__name__)


class AuthStore(Protocol):
    """Identity lookup plus refresh-token persistence, as consumed by the auth core."""

    async def find_by_employee_id(self, employee_id: str) -> Optional[Identity]: ...

    async def find_by_id(self, worker_id: int) -> Optional[Identity]: ...

    async def insert_refresh_token(
        self, token_hash: str, jti: str, worker_id: int, expires_at: datetime
    ) -> int: ...

    async def find_refresh_token(self, jti: str) -> Optional[RefreshRecord]: ...

    async def delete_refresh_token(self, record_id: int) -> bool:
        """Delete one record; True only for the caller that actually removed it."""
        ...

    async def delete_refresh_tokens(self, jti: str) -> int: ...


def _as_utc(moment: datetime) -> datetime:
    # SQLite returns naive datetimes; everything is stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class SqlAuthStore:
    """AuthStore backed by the SQLModel engine.

    Each call opens its own session and runs in the threadpool so the event
    loop is never blocked on the database.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    async def find_by_employee_id(self, employee_id: str) -> Optional[Identity]:
        return await run_in_threadpool(self._find_identity, Worker.employee_id == employee_id)

    async def find_by_id(self, worker_id: int) -> Optional[Identity]:
        return await run_in_threadpool(self._find_identity, Worker.worker_id == worker_id)

    async def insert_refresh_token(
        self, token_hash: str, jti: str, worker_id: int, expires_at: datetime
    ) -> int:
        return await run_in_threadpool(self._insert_refresh_token, token_hash, jti, worker_id, expires_at)

    async def find_refresh_token(self, jti: str) -> Optional[RefreshRecord]:
        return await run_in_threadpool(self._find_refresh_token, jti)

    async def delete_refresh_token(self, record_id: int) -> bool:
        return await run_in_threadpool(self._delete_refresh_token, record_id)

    async def delete_refresh_tokens(self, jti: str) -> int:
        return await run_in_threadpool(self._delete_refresh_tokens, jti)

    async def purge_expired_refresh_tokens(self, now: datetime) -> int:
        return await run_in_threadpool(self._purge_expired, now)

    def _find_identity(self, condition) -> Optional[Identity]:
        with Session(self._engine) as session:
            statement = (
                select(Worker, OrganizationalRole)
                .join(OrganizationalRole, Worker.role_id == OrganizationalRole.role_id)
                .where(condition)
            )
            row = session.exec(statement).first()
            if row is None:
                return None
            worker, role = row
            return Identity.from_records(worker, role)

    def _insert_refresh_token(self, token_hash: str, jti: str, worker_id: int, expires_at: datetime) -> int:
        with Session(self._engine) as session:
            record = RefreshToken(
                token_hash=token_hash,
                jti=jti,
                worker_id=worker_id,
                expires_at=_as_utc(expires_at),
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.id

    def _find_refresh_token(self, jti: str) -> Optional[RefreshRecord]:
        with Session(self._engine) as session:
            statement = (
                select(RefreshToken, Worker, OrganizationalRole)
                .join(Worker, RefreshToken.worker_id == Worker.worker_id)
                .join(OrganizationalRole, Worker.role_id == OrganizationalRole.role_id)
                .where(RefreshToken.jti == jti)
                .order_by(RefreshToken.id.desc())
            )
            row = session.exec(statement).first()
            if row is None:
                return None
            token, worker, role = row
            return RefreshRecord(
                id=token.id,
                token_hash=token.token_hash,
                jti=token.jti,
                worker_id=token.worker_id,
                expires_at=_as_utc(token.expires_at),
                created_at=_as_utc(token.created_at),
                owner=Identity.from_records(worker, role),
            )

    def _delete_refresh_token(self, record_id: int) -> bool:
        with Session(self._engine) as session:
            # The row count is what makes a concurrent second delete observe "not found".
            result = session.execute(delete(RefreshToken).where(RefreshToken.id == record_id))
            session.commit()
            return result.rowcount == 1

    def _delete_refresh_tokens(self, jti: str) -> int:
        with Session(self._engine) as session:
            result = session.execute(delete(RefreshToken).where(RefreshToken.jti == jti))
            session.commit()
            return result.rowcount

    def _purge_expired(self, now: datetime) -> int:
        with Session(self._engine) as session:
            result = session.execute(delete(RefreshToken).where(RefreshToken.expires_at <= _as_utc(now)))
            session.commit()
            purged = result.rowcount
        if purged:
            logger.info("refresh_tokens_purged", count=purged)
        return purged
