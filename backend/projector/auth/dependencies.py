from typing import Annotated

from fastapi import Depends, Header, Request

from ..models.RefreshToken import AccessClaims
from ..models.Worker import Identity
from .gate import AuthorizationGate
from .ratelimit import LoginRateLimiter
from .service import SessionManager


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_authorization_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_login_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


async def enforce_login_rate_limit(
    request: Request,
    limiter: Annotated[LoginRateLimiter, Depends(get_login_limiter)],
) -> None:
    """
    Throttles login attempts per client address; refuses with 429 once the window is used up.
    """
    client = request.client.host if request.client else None
    limiter.enforce("login", client)


async def get_current_claims(
    request: Request,
    gate: Annotated[AuthorizationGate, Depends(get_authorization_gate)],
    authorization: Annotated[str | None, Header()] = None,
) -> AccessClaims:
    """
    Verifies the bearer access token and attaches its claims to request.state.user.
    """
    claims = gate.authenticate(authorization)
    request.state.user = claims
    return claims


def require_permissions(*permissions: str):
    """
    Dependency factory: the caller must hold every listed permission (or the wildcard).
    Resolves to the caller's freshly loaded Identity.
    """
    required = frozenset(permissions)

    async def check_permissions(
        claims: Annotated[AccessClaims, Depends(get_current_claims)],
        gate: Annotated[AuthorizationGate, Depends(get_authorization_gate)],
    ) -> Identity:
        return await gate.authorize(claims, required)

    return check_permissions
