"""Token service for session JWTs and the random tokens of the login flow."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt

from vidacure.config import SessionConfig
from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import AccountId, Role, SessionClaims
from vidacure.domain.shared.service import Service

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["sub", "role", "aud", "iat", "exp", "jti"]


class TokenService(Service):
    """Service for application session tokens.

    - Session tokens are self-contained JWTs (HS256 by default) carrying the
      account id and role; nothing is stored server-side
    - OAuth state nonces and CSRF tokens are plain random hex strings
    """

    _config: SessionConfig

    def issue(self, account: Account) -> str:
        """Create a signed session token for an account.

        Args:
            account: The resolved account

        Returns:
            Encoded JWT string
        """
        now = datetime.now(UTC)
        expires_at = now + timedelta(minutes=self._config.ttl_minutes)

        payload = {
            "sub": str(account.id),
            "role": account.role.value,
            "aud": self._config.audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(16),
        }

        return jwt.encode(payload, self._config.secret, algorithm=self._config.algorithm)

    def verify(self, token: str) -> SessionClaims | None:
        """Verify a session token.

        Returns:
            The token's claims, or None if it is malformed, wrongly signed,
            expired, meant for another audience or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[self._config.algorithm],
                audience=self._config.audience,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Session token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Session token rejected: %s", e)
            return None

        try:
            return SessionClaims(
                account_id=AccountId(UUID(payload["sub"])),
                role=Role(payload["role"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
                token_id=str(payload["jti"]),
            )
        except (TypeError, ValueError):
            logger.debug("Session token carries malformed claims")
            return None

    @property
    def ttl_seconds(self) -> int:
        """Session lifetime in seconds (also the cookie max-age)."""
        return self._config.ttl_minutes * 60

    @staticmethod
    def create_state_nonce() -> str:
        """Random anti-forgery value for one OAuth round trip."""
        return secrets.token_hex(16)

    @staticmethod
    def create_csrf_token() -> str:
        """Random double-submit token issued alongside a browser session."""
        return secrets.token_hex(32)
