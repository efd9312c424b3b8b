from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from .core.database import build_engine, create_db_and_tables
from .core.init_db import init_db
from .core.logging import configure_logging, get_logger, set_correlation_id
from .core.responses import register_exception_handlers
from .core.security import validate_environment_security, validate_password_security
from .core.settings import Settings, get_settings
from .models.Worker import Worker  # Import models to register them with SQLModel
from .models.Role import OrganizationalRole
from .models.RefreshToken import RefreshToken
from .models.Program import Program
from .models.Audit import AuthAuditLog

from .audit.service import AuditTrail
from .auth.gate import AuthorizationGate
from .auth.ratelimit import LoginRateLimiter
from .auth.service import CredentialVerifier, SessionManager
from .auth.store import SqlAuthStore
from .auth.tokens import TokenIssuer, utc_now

from .auth.router import router as auth_router
from .workers.router import router as workers_router
from .programs.router import router as programs_router
from .audit.router import router as audit_router

CORRELATION_HEADER = "x-correlation-id"

logger = get_logger(__name__)


def wire_auth(app: FastAPI, settings: Settings, store: SqlAuthStore, audit: AuditTrail) -> None:
    """Builds the auth core once and hands it to request handlers via app.state."""
    issuer = TokenIssuer.from_settings(settings, store)
    verifier = CredentialVerifier(store, audit)
    app.state.session_manager = SessionManager(store, issuer, verifier, audit=audit)
    app.state.gate = AuthorizationGate(store, issuer)
    app.state.login_limiter = LoginRateLimiter(settings.LOGIN_RATE_LIMIT, settings.login_rate_window)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.DATABASE_URL)
        create_db_and_tables(engine)
        init_db(engine, settings)
        validate_environment_security(settings)
        validate_password_security(engine)

        store = SqlAuthStore(engine)
        await store.purge_expired_refresh_tokens(utc_now())

        app.state.settings = settings
        app.state.engine = engine
        wire_auth(app, settings, store, AuditTrail(engine))
        logger.info("startup_complete", environment=settings.ENVIRONMENT)
        yield
        engine.dispose()

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    register_exception_handlers(app)

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    app.include_router(auth_router)
    app.include_router(workers_router)
    app.include_router(programs_router)
    app.include_router(audit_router)

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    return app
