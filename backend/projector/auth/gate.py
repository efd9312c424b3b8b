from typing import Iterable, Optional

from ..core.logging import get_logger
from ..models.RefreshToken import AccessClaims
from ..models.Worker import Identity
from .errors import Forbidden, InternalError, TokenVerificationError, Unauthorized
from .store import AuthStore
from .tokens import TokenIssuer

logger = get_logger(__name__)

BEARER_PREFIX = "bearer"


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthorized("Access token required", reason="missing_header")
    scheme, _, credentials = authorization.strip().partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != BEARER_PREFIX or not credentials or " " in credentials:
        raise Unauthorized("Access token required", reason="malformed_header")
    return credentials


class AuthorizationGate:
    """
    Verifies access tokens and checks role permissions.

    authenticate() is purely local (signature + expiry). authorize() always
    reloads the caller's role, so a permission change applies on the very
    next call even while the access token is still valid.
    """

    def __init__(self, store: AuthStore, issuer: TokenIssuer):
        self._store = store
        self._issuer = issuer

    def authenticate(self, authorization: Optional[str]) -> AccessClaims:
        token = extract_bearer_token(authorization)
        try:
            return self._issuer.decode_access_token(token)
        except TokenVerificationError as e:
            logger.warning("authentication_failed", reason=str(e))
            raise Unauthorized(reason=str(e))

    async def authorize(self, claims: AccessClaims, required_permissions: Iterable[str]) -> Identity:
        required = sorted(set(required_permissions))
        try:
            identity = await self._store.find_by_id(claims.worker_id)
        except Exception:
            logger.exception("authorization_lookup_failed", worker_id=claims.sub)
            raise InternalError(reason="identity_lookup_failed")

        if identity is None:
            raise Unauthorized("Worker not found", reason="worker_not_found")

        permissions = identity.role.permissions
        if not permissions.grants(required):
            logger.warning(
                "authorization_denied",
                worker_id=identity.worker_id,
                required=required,
                held=permissions.as_list(),
            )
            raise Forbidden(required=required, actual=permissions.as_list())
        return identity
