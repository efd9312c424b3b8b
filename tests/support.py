import asyncio
import itertools
import json
from datetime import datetime, timedelta, timezone

from projector.auth.passwords import get_password_hash
from projector.core.settings import Settings
from projector.models.RefreshToken import RefreshRecord
from projector.models.Role import parse_permissions
from projector.models.Worker import Identity, RoleGrant

ACCESS_SECRET = "test-jwt-secret-at-least-32-characters-long"
REFRESH_SECRET = "test-refresh-secret-at-least-32-characters-long-different"

START = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET": ACCESS_SECRET,
        "REFRESH_SECRET": REFRESH_SECRET,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "ERROR",
        "LOG_JSON": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_identity(worker_id=1, employee_id="ADMIN001", role="Administrator", permissions=("*",), password="admin123!"):
    return Identity(
        worker_id=worker_id,
        employee_id=employee_id,
        full_name=f"Worker {employee_id}",
        email=f"{employee_id.lower()}@projector.test",
        password_hash=get_password_hash(password),
        role=RoleGrant(role_id=worker_id, description=role, permissions=parse_permissions(json.dumps(list(permissions)))),
    )


class MemoryAuthStore:
    """Dict-backed AuthStore. Every method yields to the loop, like a real store call."""

    def __init__(self, *identities: Identity):
        self.identities = {identity.worker_id: identity for identity in identities}
        self.records: dict[int, dict] = {}
        self._ids = itertools.count(1)
        self.fail_lookups = False

    def replace_identity(self, identity: Identity) -> None:
        self.identities[identity.worker_id] = identity

    async def find_by_employee_id(self, employee_id):
        await asyncio.sleep(0)
        return next((i for i in self.identities.values() if i.employee_id == employee_id), None)

    async def find_by_id(self, worker_id):
        await asyncio.sleep(0)
        if self.fail_lookups:
            raise ConnectionError("store unreachable")
        return self.identities.get(worker_id)

    async def insert_refresh_token(self, token_hash, jti, worker_id, expires_at):
        await asyncio.sleep(0)
        record_id = next(self._ids)
        self.records[record_id] = {
            "id": record_id,
            "token_hash": token_hash,
            "jti": jti,
            "worker_id": worker_id,
            "expires_at": expires_at,
            "created_at": datetime.now(timezone.utc),
        }
        return record_id

    async def find_refresh_token(self, jti):
        await asyncio.sleep(0)
        matches = [r for r in self.records.values() if r["jti"] == jti]
        if not matches:
            return None
        row = max(matches, key=lambda r: r["id"])
        return RefreshRecord(owner=self.identities[row["worker_id"]], **row)

    async def delete_refresh_token(self, record_id):
        await asyncio.sleep(0)
        return self.records.pop(record_id, None) is not None

    async def delete_refresh_tokens(self, jti):
        await asyncio.sleep(0)
        doomed = [rid for rid, r in self.records.items() if r["jti"] == jti]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)
