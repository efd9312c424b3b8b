from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from .logging import get_logger
from .settings import Settings
from ..auth.passwords import is_recognized_hash
from ..models.Worker import Worker

logger = get_logger(__name__)


class StartupSecurityError(RuntimeError):
    pass


def validate_environment_security(settings: Settings) -> None:
    """
    Secret strength is enforced by Settings itself; this covers the rest of the environment.
    """
    url = settings.DATABASE_URL
    if "password" in url and "sslmode=require" not in url:
        logger.warning("database_ssl_not_enforced")
    if settings.is_production and settings.SEED_ADMIN and settings.ADMIN_PASSWORD == "admin123!":
        raise StartupSecurityError("ADMIN_PASSWORD must be changed from its default in production")
    if settings.is_production and settings.CLOCK_SKEW_SECONDS > 60:
        logger.warning("large_clock_skew_tolerance", seconds=settings.CLOCK_SKEW_SECONDS)
    logger.info("environment_security_validated")


def validate_password_security(engine: Engine) -> None:
    """
    Refuse to start if any worker's password is not stored as a recognized Argon2 hash.
    """
    with Session(engine) as session:
        rows = session.exec(select(Worker.employee_id, Worker.password_hash)).all()

    for employee_id, password_hash in rows:
        if not is_recognized_hash(password_hash):
            logger.error("plaintext_password_detected", employee_id=employee_id)
            raise StartupSecurityError(
                f"SECURITY VIOLATION: password for worker {employee_id} is not a recognized hash"
            )

    logger.info("password_security_validated", workers_checked=len(rows))
