import logging
from collections.abc import Collection, Mapping

from vidacure.domain.auth.model.principal import Principal
from vidacure.domain.auth.model.value import Role
from vidacure.domain.auth.service.client import detect_client_type, extract_credential
from vidacure.domain.auth.service.csrf import CsrfGuard
from vidacure.domain.auth.service.token import TokenService
from vidacure.domain.shared.error import (
    InsufficientPermissionsError,
    InvalidOrExpiredTokenError,
    NotAuthenticatedError,
)
from vidacure.domain.shared.service import Service

logger = logging.getLogger(__name__)


class AccessGate(Service):
    """Per-request authentication for protected routes.

    Order of checks: client type, credential presence, token validity, CSRF
    (when requested), role membership (when requested).
    """

    _token_service: TokenService
    _csrf_guard: CsrfGuard

    def authenticate(
        self,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
        roles: Collection[Role] | None = None,
        csrf: bool = False,
    ) -> Principal:
        client_type = detect_client_type(headers)
        credential = extract_credential(client_type, headers, cookies)

        if credential.token is None:
            raise NotAuthenticatedError(
                "Not authenticated",
                detail={
                    "client_type": client_type.value,
                    "transport": credential.transport.value,
                },
            )

        claims = self._token_service.verify(credential.token)
        if claims is None:
            raise InvalidOrExpiredTokenError("Invalid or expired token")

        principal = Principal(
            account_id=claims.account_id,
            role=claims.role,
            client_type=client_type,
        )

        if csrf:
            self._csrf_guard.check(client_type, headers, cookies)

        if roles and not principal.has_any_role(*roles):
            logger.info(
                "Account %s with role %s denied; requires one of %s",
                principal.account_id,
                principal.role.value,
                sorted(r.value for r in roles),
            )
            raise InsufficientPermissionsError("Insufficient permissions")

        return principal
