import json
from dataclasses import dataclass
from typing import Iterable, Union

from sqlmodel import Field, SQLModel

from ..auth.errors import InvalidPermissionData

WILDCARD = "*"


# ==========================================
# Permission representation
# ==========================================
@dataclass(frozen=True)
class Wildcard:
    """Grants every permission, including ones nobody has defined yet."""

    def grants(self, required: Iterable[str]) -> bool:
        return True

    def as_list(self) -> list[str]:
        return [WILDCARD]


@dataclass(frozen=True)
class ExplicitSet:
    permissions: frozenset[str]

    def grants(self, required: Iterable[str]) -> bool:
        return set(required) <= self.permissions

    def as_list(self) -> list[str]:
        return sorted(self.permissions)


PermissionSet = Union[Wildcard, ExplicitSet]


def parse_permissions(raw: str) -> PermissionSet:
    """
    Parse a role's stored permissions into a PermissionSet.

    Accepts a JSON array of strings, a JSON string, or a bare permission
    name. A wildcard anywhere in the set grants everything.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidPermissionData("Role permissions must be a non-empty string")

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        decoded = raw.strip()

    if isinstance(decoded, str):
        decoded = [decoded]

    if not isinstance(decoded, list) or not all(isinstance(p, str) and p.strip() for p in decoded):
        raise InvalidPermissionData(f"Unsupported role permissions value: {raw!r}")

    permissions = frozenset(p.strip() for p in decoded)
    if WILDCARD in permissions:
        return Wildcard()
    return ExplicitSet(permissions)


def serialize_permissions(permissions: Iterable[str]) -> str:
    """Validate and encode a permission list the way roles are stored."""
    encoded = json.dumps(sorted(set(permissions)))
    parse_permissions(encoded)
    return encoded


# ==========================================
# SQLModel (Database Entity)
# ==========================================
class OrganizationalRole(SQLModel, table=True):
    __tablename__ = "organizational_roles"

    role_id: int | None = Field(default=None, primary_key=True)
    role_description: str = Field(unique=True, index=True)
    role_permissions: str  # JSON array, e.g. '["create_program", "read_all"]' or '["*"]'

    def permission_set(self) -> PermissionSet:
        return parse_permissions(self.role_permissions)

