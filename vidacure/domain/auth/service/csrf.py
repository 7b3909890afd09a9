import logging
import secrets
from collections.abc import Mapping

from vidacure.domain.auth.model.value import ClientType
from vidacure.domain.auth.service.client import CSRF_COOKIE, CSRF_HEADER
from vidacure.domain.shared.error import CsrfTokenMismatchError, MissingCsrfTokenError
from vidacure.domain.shared.service import Service

logger = logging.getLogger(__name__)


class CsrfGuard(Service):
    """Double-submit cookie check for browser transports.

    The header must equal the ``csrf_token`` cookie. Native apps are exempt:
    they send a bearer token that a foreign page cannot attach.
    """

    def check(
        self,
        client_type: ClientType,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> None:
        if client_type is ClientType.NATIVE_APP:
            return

        header_token = headers.get(CSRF_HEADER)
        if not header_token:
            raise MissingCsrfTokenError("CSRF token missing")

        cookie_token = cookies.get(CSRF_COOKIE) or ""
        if not secrets.compare_digest(header_token.encode(), cookie_token.encode()):
            logger.warning("CSRF token mismatch for %s client", client_type.value)
            raise CsrfTokenMismatchError("Invalid CSRF token")
