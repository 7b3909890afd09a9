"""Client-type detection and credential transport selection."""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from vidacure.domain.auth.model.value import ClientType

CLIENT_HEADER = "x-client"
CSRF_HEADER = "x-csrf-token"
SESSION_COOKIE = "session_token"
CSRF_COOKIE = "csrf_token"
STATE_COOKIE = "oauth_state"

MOBILE_USER_AGENT = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE
)

# BankID method hints passed to the broker as acr_values
BROKER_HINTS: dict[ClientType, str] = {
    ClientType.NATIVE_APP: "urn:grn:authn:se:bankid",
    ClientType.MOBILE_BROWSER: "urn:grn:authn:se:bankid:same-device",
    ClientType.WEB: "urn:grn:authn:se:bankid:another-device:qr",
}


_DECLARABLE = frozenset(c.value for c in ClientType)


class CredentialTransport(StrEnum):
    COOKIE = "cookie"
    BEARER = "bearer"


def detect_client_type(headers: Mapping[str, str]) -> ClientType:
    """Classify a request by its headers.

    An explicit ``x-client`` header wins; otherwise a mobile user agent means a
    mobile browser; anything else is treated as a desktop web browser.
    """
    declared = (headers.get(CLIENT_HEADER) or "").strip().lower()
    if declared in _DECLARABLE:
        return ClientType(declared)
    if MOBILE_USER_AGENT.search(headers.get("user-agent") or ""):
        return ClientType.MOBILE_BROWSER
    return ClientType.WEB


def broker_hint(client_type: ClientType) -> str:
    return BROKER_HINTS[client_type]


def transport_for(client_type: ClientType) -> CredentialTransport:
    return CredentialTransport.COOKIE if client_type.uses_cookies else CredentialTransport.BEARER


@dataclass(frozen=True)
class ExtractedCredential:
    transport: CredentialTransport
    token: str | None


def bearer_token(headers: Mapping[str, str]) -> str | None:
    """Return the token of an ``Authorization: Bearer`` header, if any."""
    auth_header = headers.get("authorization") or ""
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def extract_credential(
    client_type: ClientType,
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
) -> ExtractedCredential:
    """Read the session token from the transport the client type uses."""
    transport = transport_for(client_type)
    if transport is CredentialTransport.BEARER:
        return ExtractedCredential(transport, bearer_token(headers))
    return ExtractedCredential(transport, cookies.get(SESSION_COOKIE) or None)
