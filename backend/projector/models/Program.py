from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class Program(SQLModel, table=True):
    __tablename__ = "programs"

    program_id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    description: str | None = None
    created_by: int = Field(foreign_key="workers.worker_id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ProgramCreate(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None


class ProgramUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class ProgramResponse(SQLModel):
    program_id: int
    name: str
    description: str | None
    created_by: int
    created_at: datetime
