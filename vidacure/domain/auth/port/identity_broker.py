"""Identity broker port for the auth domain."""

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from vidacure.domain.shared.port import Port


@dataclass(frozen=True)
class IdentityClaims:
    """Verified claims from a broker ID token.

    ``national_id`` is the plaintext personnummer. It lives only as long as the
    login request and is excluded from repr so it never reaches a log line.
    """

    subject: str
    national_id: str | None = field(repr=False)
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, repr=False)


class IdentityBroker(Port, Protocol):
    """Port for the OIDC identity broker that fronts BankID.

    Implementations are adapters in infrastructure/ (e.g., CriiptoIdentityBroker).
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Load discovery metadata and signing keys. Never raises; failures leave
        the broker unconfigured."""
        ...

    @abstractmethod
    def ensure_ready(self) -> None:
        """Raise BrokerNotConfiguredError unless metadata was loaded."""
        ...

    @abstractmethod
    def authorization_url(self, state: str, redirect_uri: str, acr_values: str) -> str:
        """Build the URL to send the browser to.

        Args:
            state: Anti-forgery nonce, echoed back on the callback
            redirect_uri: Where the broker redirects after authentication
            acr_values: BankID method hint for the client type

        Returns:
            Full authorization URL
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str, redirect_uri: str) -> IdentityClaims:
        """Exchange an authorization code and verify the returned ID token.

        Raises:
            BrokerAuthError: The broker refused the code or the ID token is invalid
            BrokerUnavailableError: The broker could not be reached in time
        """
        ...

    @abstractmethod
    async def verify_native_token(self, id_token: str) -> IdentityClaims:
        """Verify an ID token the native app obtained from the broker itself.

        Raises:
            InvalidIdentityTokenError: Signature, issuer, audience or expiry check failed
        """
        ...
