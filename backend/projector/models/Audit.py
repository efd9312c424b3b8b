from datetime import datetime, timezone
from typing import Optional
from sqlmodel import Field, SQLModel
import hashlib

GENESIS_HASH = "0" * 64


class AuthAuditLog(SQLModel, table=True):
    __tablename__ = "auth_audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc).replace(microsecond=0))
    worker_id: Optional[int] = Field(default=None, index=True)
    employee_id: Optional[str] = Field(default=None, index=True)
    event: str  # login, refresh, logout
    outcome: str  # success, failure, ignored
    details: str = ""
    previous_hash: str
    current_hash: str

    def calculate_hash(self) -> str:
        """
        SHA-256 over previous_hash + timestamp + worker/employee id + event + outcome + details.
        """
        # SQLite drops tzinfo on the round trip, so hash the naive UTC form.
        ts_str = self.timestamp.replace(tzinfo=None).isoformat()

        data = (
            self.previous_hash +
            ts_str +
            str(self.worker_id or "") +
            (self.employee_id or "") +
            self.event +
            self.outcome +
            self.details
        )
        return hashlib.sha256(data.encode("utf-8")).hexdigest()


class AuditChainStatus(SQLModel):
    valid: bool
    entries: int
    first_broken_id: Optional[int] = None
