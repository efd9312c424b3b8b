from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from .logging import get_logger
from .settings import Settings
from ..auth.passwords import get_password_hash
from ..models.Role import OrganizationalRole, serialize_permissions
from ..models.Worker import Worker

logger = get_logger(__name__)

ADMIN_ROLE = "Administrator"

DEFAULT_ROLES = {
    ADMIN_ROLE: ["*"],
    "Program Manager": ["create_program", "update_program", "delete_program", "read_all"],
    "Team Lead": ["create_program", "update_program", "read_all"],
    "Worker": ["read_all"],
}


def seed_roles(session: Session) -> dict[str, OrganizationalRole]:
    """Create or update the default organizational roles, keyed by description."""
    roles = {}
    for description, permissions in DEFAULT_ROLES.items():
        encoded = serialize_permissions(permissions)
        role = session.exec(
            select(OrganizationalRole).where(OrganizationalRole.role_description == description)
        ).first()
        if role is None:
            role = OrganizationalRole(role_description=description, role_permissions=encoded)
        else:
            role.role_permissions = encoded
        session.add(role)
        roles[description] = role
    session.commit()
    for role in roles.values():
        session.refresh(role)
    return roles


def seed_admin(session: Session, admin_role: OrganizationalRole, employee_id: str, password: str) -> None:
    statement = select(Worker).where(Worker.employee_id == employee_id)
    if session.exec(statement).first():
        logger.info("admin_worker_exists", employee_id=employee_id)
        return

    logger.info("admin_worker_created", employee_id=employee_id)
    session.add(Worker(
        employee_id=employee_id,
        full_name="System Administrator",
        email="admin@projector.local",
        password_hash=get_password_hash(password),
        role_id=admin_role.role_id,
    ))
    session.commit()


def init_db(engine: Engine, settings: Settings) -> None:
    with Session(engine) as session:
        roles = seed_roles(session)
        if settings.SEED_ADMIN:
            seed_admin(session, roles[ADMIN_ROLE], settings.ADMIN_EMPLOYEE_ID, settings.ADMIN_PASSWORD)
