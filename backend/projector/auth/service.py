import uuid
from typing import Optional

from ..audit.service import AuditTrail
from ..core.logging import get_logger
from ..models.RefreshToken import LoginResponse, TokenPair
from ..models.Worker import Identity
from .errors import InternalError, InvalidCredentials, InvalidRefreshToken, TokenVerificationError
from .passwords import hash_secret, verify_secret
from .store import AuthStore
from .tokens import TokenIssuer

logger = get_logger(__name__)


def new_token_id() -> str:
    return str(uuid.uuid4())


class CredentialVerifier:
    """Checks an employee ID and password against the stored Argon2 hash."""

    def __init__(self, store: AuthStore, audit: Optional[AuditTrail] = None):
        self._store = store
        self._audit = audit
        self._dummy_hash: Optional[str] = None

    async def verify(self, employee_id: str, password: str) -> Identity:
        try:
            identity = await self._store.find_by_employee_id(employee_id)
        except Exception:
            # Includes roles whose stored permissions no longer parse
            logger.exception("credential_lookup_failed", employee_id=employee_id)
            raise InternalError("Authentication check failed", reason="identity_lookup_failed")

        if identity is None:
            # Spend the same Argon2 work as a real check so response time
            # does not reveal which employee IDs exist.
            await verify_secret(password, await self._get_dummy_hash())
            await self._fail(employee_id, "unknown_employee_id")

        if not await verify_secret(password, identity.password_hash):
            await self._fail(employee_id, "password_mismatch", worker_id=identity.worker_id)

        logger.info("login_succeeded", employee_id=employee_id, worker_id=identity.worker_id)
        if self._audit:
            await self._audit.record("login", "success", worker_id=identity.worker_id, employee_id=employee_id)
        return identity

    async def _fail(self, employee_id: str, reason: str, worker_id: Optional[int] = None):
        logger.warning("login_failed", employee_id=employee_id, reason=reason)
        if self._audit:
            await self._audit.record("login", "failure", worker_id=worker_id, employee_id=employee_id, details=reason)
        raise InvalidCredentials(reason=reason)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await hash_secret(new_token_id())
        return self._dummy_hash


class SessionManager:
    """
    Login, refresh and logout over access/refresh token pairs.

    A refresh token is single use: redeeming it deletes its record before a
    new pair is minted, so a replayed or concurrently redeemed token fails.
    """

    def __init__(
        self,
        store: AuthStore,
        issuer: TokenIssuer,
        verifier: CredentialVerifier,
        audit: Optional[AuditTrail] = None,
    ):
        self._store = store
        self._issuer = issuer
        self._verifier = verifier
        self._audit = audit

    async def login(self, employee_id: str, password: str) -> LoginResponse:
        identity = await self._verifier.verify(employee_id, password)
        pair = await self._issue_pair(identity)
        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=identity.projection(),
        )

    async def refresh(self, refresh_token: str) -> TokenPair:
        try:
            identity = await self._redeem(refresh_token)
            pair = await self._issue_pair(identity)
        except InvalidRefreshToken as e:
            logger.warning("refresh_rejected", reason=e.reason)
            await self._audit_refresh("failure", details=e.reason or "")
            raise
        except Exception:
            logger.exception("refresh_failed")
            raise InvalidRefreshToken(reason="unexpected_error")

        logger.info("tokens_refreshed", worker_id=identity.worker_id)
        await self._audit_refresh("success", worker_id=identity.worker_id, employee_id=identity.employee_id)
        return pair

    async def _audit_refresh(self, outcome: str, **fields) -> None:
        # Audit failures are logged, never raised
        if not self._audit:
            return
        try:
            await self._audit.record("refresh", outcome, **fields)
        except Exception:
            logger.exception("audit_write_failed", audit_event="refresh")

    async def logout(self, refresh_token: str) -> None:
        # Revocation must always look successful to the caller.
        try:
            jti = self._issuer.decode_refresh_token(refresh_token)
            removed = await self._store.delete_refresh_tokens(jti)
            if self._audit:
                await self._audit.record("logout", "success" if removed else "ignored", details=f"jti={jti}")
        except TokenVerificationError as e:
            logger.info("logout_ignored", reason=str(e))
            return
        except Exception:
            logger.exception("logout_failed")
            return

        logger.info("logout_completed", jti=jti, removed=removed)

    async def _redeem(self, refresh_token: str) -> Identity:
        """Validate a presented refresh token and consume its record."""
        try:
            jti = self._issuer.decode_refresh_token(refresh_token)
        except TokenVerificationError as e:
            raise InvalidRefreshToken(reason=f"verification_failed: {e}")

        record = await self._store.find_refresh_token(jti)
        if record is None:
            raise InvalidRefreshToken(reason="record_not_found")
        if record.is_expired(self._issuer.now()):
            raise InvalidRefreshToken(reason="record_expired")

        # Second gate besides the signature: the stored hash must match too.
        if not await verify_secret(refresh_token, record.token_hash):
            raise InvalidRefreshToken(reason="hash_mismatch")

        # Role or profile may have changed since the token was issued.
        identity = await self._store.find_by_id(record.worker_id)
        if identity is None:
            raise InvalidRefreshToken(reason="worker_not_found")

        if not await self._store.delete_refresh_token(record.id):
            raise InvalidRefreshToken(reason="already_redeemed")

        return identity

    async def _issue_pair(self, identity: Identity) -> TokenPair:
        jti = new_token_id()
        access_token = self._issuer.mint_access_token(identity, jti)
        refresh_token = await self._issuer.mint_refresh_token(identity, jti)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)
