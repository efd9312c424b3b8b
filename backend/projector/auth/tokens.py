from calendar import timegm
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from jose import JWTError, jwt
from pydantic import ValidationError

from ..core.logging import get_logger
from ..core.settings import Settings
from ..models.RefreshToken import AccessClaims
from ..models.Worker import Identity
from .errors import TokenVerificationError
from .passwords import hash_secret
from .store import AuthStore

logger = get_logger(__name__)

ACCESS_CLAIMS = ("sub", "employee_id", "role", "jti", "iat", "exp")
REFRESH_CLAIMS = ("jti", "iat", "exp")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(moment: datetime) -> int:
    return timegm(moment.utctimetuple())


class TokenIssuer:
    """
    Mints and verifies access and refresh tokens.

    Access tokens are stateless and carry the caller's identity. Refresh
    tokens carry only their jti; each one is paired with a hashed record in
    the store, written here at mint time.
    """

    def __init__(
        self,
        store: AuthStore,
        *,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock_skew: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utc_now,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh signing secrets must differ")
        self._store = store
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock_skew = clock_skew
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, store: AuthStore, clock: Callable[[], datetime] = utc_now) -> "TokenIssuer":
        return cls(
            store,
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.REFRESH_SECRET,
            algorithm=settings.ALGORITHM,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
            clock_skew=settings.clock_skew,
            clock=clock,
        )

    def now(self) -> datetime:
        return self._clock()

    def mint_access_token(self, identity: Identity, jti: str) -> str:
        now = self._clock()
        to_encode = {
            "sub": str(identity.worker_id),
            "employee_id": identity.employee_id,
            "role": identity.role.description,
            "jti": jti,
            "iat": _timestamp(now),
            "exp": _timestamp(now + self.access_ttl),
        }
        return jwt.encode(to_encode, self._access_secret, algorithm=self.algorithm)

    async def mint_refresh_token(self, identity: Identity, jti: str) -> str:
        now = self._clock()
        expires_at = now + self.refresh_ttl
        to_encode = {
            "jti": jti,
            "iat": _timestamp(now),
            "exp": _timestamp(expires_at),
        }
        encoded_jwt = jwt.encode(to_encode, self._refresh_secret, algorithm=self.algorithm)

        # Only the hash is kept server-side
        token_hash = await hash_secret(encoded_jwt)
        await self._store.insert_refresh_token(token_hash, jti, identity.worker_id, expires_at)
        return encoded_jwt

    def decode_access_token(self, token: str) -> AccessClaims:
        payload = self._decode(token, self._access_secret, ACCESS_CLAIMS)
        try:
            return AccessClaims.model_validate(payload)
        except ValidationError as e:
            raise TokenVerificationError(f"Malformed access token claims: {e.error_count()} errors")

    def decode_refresh_token(self, token: str) -> str:
        """Verify a refresh token and return its jti."""
        payload = self._decode(token, self._refresh_secret, REFRESH_CLAIMS)
        return str(payload["jti"])

    def _decode(self, token: str, secret: str, required_claims: tuple[str, ...]) -> dict[str, Any]:
        if not token:
            raise TokenVerificationError("Empty token")
        try:
            # Expiry is checked below against the injectable clock.
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenVerificationError(f"Invalid signature or format: {e}")

        missing = [claim for claim in required_claims if payload.get(claim) in (None, "")]
        if missing:
            raise TokenVerificationError(f"Missing required claims: {', '.join(missing)}")

        exp = payload["exp"]
        if not isinstance(exp, int):
            raise TokenVerificationError("Expiration claim must be an integer")
        leeway = int(self.clock_skew.total_seconds())
        if _timestamp(self._clock()) > exp + leeway:
            raise TokenVerificationError("Token has expired")

        return payload
