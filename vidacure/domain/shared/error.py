"""Error hierarchy for Vidacure.

Error layers:
- VidaError: Base class for all Vidacure errors
- DomainError: Client-caused failures (4xx responses)
- InfrastructureError: System-level failures like storage/network issues (5xx responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
"""

from collections.abc import Mapping
from typing import Any, ClassVar


class VidaError(Exception):
    """Base class for all Vidacure errors."""

    default_code: ClassVar[str | None] = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        detail: Mapping[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self.__class__.__name__
        self.detail: dict[str, Any] = dict(detail or {})
        super().__init__(message)


# =============================================================================
# Domain Errors (client-caused - typically 4xx)
# =============================================================================


class DomainError(VidaError):
    """Base class for domain/business errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ConflictError(DomainError):
    """Resource already exists."""


class ProtocolError(DomainError):
    """The client broke the login protocol; the attempt must restart from scratch."""


class InvalidOAuthStateError(ProtocolError):
    """Callback state is missing or does not match the nonce cookie."""

    default_code = "invalid_state"


class InvalidCallbackRequestError(ProtocolError):
    """Callback body could not be parsed."""

    default_code = "invalid_callback_request"


class MissingAuthorizationCodeError(ProtocolError):
    """Callback carried no authorization code."""

    default_code = "missing_code"


class InvalidIdentityClaimsError(ProtocolError):
    """Broker claims lack a well-formed national identity number."""

    default_code = "invalid_identity_claims"


class InvalidClientTypeError(ProtocolError):
    """The endpoint is not available to the declared client type."""

    default_code = "invalid_client_type"


class BrokerAuthError(DomainError):
    """The identity broker refused or could not prove the authentication."""

    default_code = "broker_error"


class AuthenticationError(DomainError):
    """The caller is not (or no longer) authenticated."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        detail: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, {"authenticated": False, **(detail or {})})


class NotAuthenticatedError(AuthenticationError):
    """No credential was presented on the transport the client uses."""

    default_code = "not_authenticated"


class InvalidOrExpiredTokenError(AuthenticationError):
    """The session credential failed verification."""

    default_code = "invalid_token"


class CsrfTokenMismatchError(AuthenticationError):
    """The CSRF header does not match the CSRF cookie."""

    default_code = "csrf_mismatch"


class InvalidIdentityTokenError(AuthenticationError):
    """A broker ID token presented by the native app failed verification."""

    default_code = "invalid_identity_token"


class AuthorizationError(DomainError):
    """Caller authenticated but not allowed to perform this operation."""


class InsufficientPermissionsError(AuthorizationError):
    default_code = "insufficient_permissions"


class MissingCsrfTokenError(AuthorizationError):
    default_code = "missing_csrf_token"


# =============================================================================
# Infrastructure Errors (system-level failures - typically 5xx)
# =============================================================================


class InfrastructureError(VidaError):
    """Base class for infrastructure/system errors."""


class StorageError(InfrastructureError):
    """The account store failed to read or durably write."""

    default_code = "storage_error"


class ExternalServiceError(InfrastructureError):
    """External service is unavailable or failed."""


class BrokerUnavailableError(ExternalServiceError):
    """The identity broker could not be reached in time."""

    default_code = "broker_unavailable"


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""


class BrokerNotConfiguredError(ConfigurationError):
    """Broker metadata was never loaded; only an operator can fix this."""

    default_code = "auth_unavailable"


class AuthenticationFailedError(VidaError):
    """Unexpected failure during a login attempt. Detail stays in the server log."""

    default_code = "authentication_failed"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)
