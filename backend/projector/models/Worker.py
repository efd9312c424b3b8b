from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from .Role import OrganizationalRole, PermissionSet


# ==========================================
# SQLModel (Database Entity + Base Pydantic)
# ==========================================
class Worker(SQLModel, table=True):
    __tablename__ = "workers"

    worker_id: int | None = Field(default=None, primary_key=True)
    employee_id: str = Field(unique=True, index=True, nullable=False)
    full_name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    role_id: int = Field(foreign_key="organizational_roles.role_id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ==========================================
# Identity (read-only view consumed by the auth core)
# ==========================================
@dataclass(frozen=True)
class RoleGrant:
    role_id: int
    description: str
    permissions: PermissionSet


@dataclass(frozen=True)
class Identity:
    worker_id: int
    employee_id: str
    full_name: str
    email: str
    password_hash: str
    role: RoleGrant

    @classmethod
    def from_records(cls, worker: Worker, role: OrganizationalRole) -> "Identity":
        # Permissions are parsed here, once, so malformed role data fails at load.
        return cls(
            worker_id=worker.worker_id,
            employee_id=worker.employee_id,
            full_name=worker.full_name,
            email=worker.email,
            password_hash=worker.password_hash,
            role=RoleGrant(
                role_id=role.role_id,
                description=role.role_description,
                permissions=role.permission_set(),
            ),
        )

    def projection(self) -> "WorkerProjection":
        return WorkerProjection(
            worker_id=self.worker_id,
            employee_id=self.employee_id,
            full_name=self.full_name,
            email=self.email,
            role=self.role.description,
        )


# ==========================================
# Pydantic Models (DTOs)
# ==========================================

# Public view of a worker returned at login. Never carries the password hash.
class WorkerProjection(SQLModel):
    worker_id: int
    employee_id: str
    full_name: str
    email: str
    role: str


# Properties to receive via API on creation
class WorkerCreate(SQLModel):
    employee_id: str = Field(min_length=3, max_length=64)
    full_name: str
    email: EmailStr
    password: str = Field(min_length=8)
    role_id: int


# Properties accepted on update; the employee ID is permanent
class WorkerUpdate(SQLModel):
    full_name: str | None = None
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)
    role_id: int | None = None


# Properties to return via API
class WorkerResponse(SQLModel):
    worker_id: int
    employee_id: str
    full_name: str
    email: str
    role_id: int
    created_at: datetime
