from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from .Worker import Identity, WorkerProjection


class RefreshToken(SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    id: int | None = Field(default=None, primary_key=True)
    token_hash: str  # Argon2 hash of the signed refresh token string
    jti: str = Field(index=True)
    worker_id: int = Field(foreign_key="workers.worker_id", index=True)
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RefreshRecord:
    id: int
    token_hash: str
    jti: str
    worker_id: int
    expires_at: datetime
    created_at: datetime
    owner: Identity

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


# ==========================================
# Wire models
# ==========================================
class LoginRequest(SQLModel):
    employee_id: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1)


class RefreshRequest(SQLModel):
    refresh_token: str = Field(min_length=1)


class TokenPair(SQLModel):
    access_token: str
    refresh_token: str


class LoginResponse(TokenPair):
    user: WorkerProjection


class AccessClaims(SQLModel):
    sub: str  # Worker ID
    employee_id: str
    role: str  # Role description at issuance time
    jti: str
    iat: int
    exp: int

    @field_validator("sub")
    @classmethod
    def check_sub(cls, value: str) -> str:
        if not value.isdigit():
            raise ValueError("sub must be a numeric worker id")
        return value

    @property
    def worker_id(self) -> int:
        return int(self.sub)
