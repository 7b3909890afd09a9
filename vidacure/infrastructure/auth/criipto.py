"""Criipto identity broker adapter (OIDC in front of Swedish BankID)."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
import jwt

from vidacure.config import BrokerConfig
from vidacure.domain.auth.port.identity_broker import IdentityBroker, IdentityClaims
from vidacure.domain.shared.error import (
    BrokerAuthError,
    BrokerNotConfiguredError,
    BrokerUnavailableError,
    InvalidIdentityTokenError,
)

logger = logging.getLogger(__name__)

# Tolerated clock skew between us and the broker when checking exp/iat
_CLOCK_SKEW_SECONDS = 30
_ALGORITHMS = ["RS256"]
_REQUIRED_CLAIMS = ["iss", "aud", "exp", "iat", "sub"]


@dataclass(frozen=True)
class BrokerMetadata:
    """Discovery document fields we rely on, loaded once at startup."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str


class _IdTokenRejected(Exception):
    """Internal: an ID token failed verification."""


class CriiptoIdentityBroker(IdentityBroker):
    """IdentityBroker implementation for Criipto Verify."""

    def __init__(self, config: BrokerConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client
        self._metadata: BrokerMetadata | None = None
        self._jwks: jwt.PyJWKSet | None = None
        self._jwks_lock = asyncio.Lock()

    @property
    def metadata(self) -> BrokerMetadata | None:
        return self._metadata

    async def initialize(self) -> None:
        """Fetch the discovery document and signing keys.

        Leaves the broker unconfigured (login answers 503) if the config is
        incomplete or the broker is unreachable; the server still starts.
        """
        if not self._config.is_configured:
            logger.warning("Identity broker not configured; BankID login disabled")
            return

        discovery_url = f"{self._config.base_url}/.well-known/openid-configuration"
        try:
            response = await self._http.get(discovery_url)
            response.raise_for_status()
            document = response.json()
            metadata = BrokerMetadata(
                issuer=document["issuer"],
                authorization_endpoint=document["authorization_endpoint"],
                token_endpoint=document["token_endpoint"],
                jwks_uri=document["jwks_uri"],
            )
            jwks = await self._fetch_jwks(metadata.jwks_uri)
        except (httpx.HTTPError, ValueError, KeyError, jwt.PyJWTError) as e:
            logger.warning("Failed to load broker metadata from %s: %s", discovery_url, e)
            return

        self._metadata = metadata
        self._jwks = jwks
        logger.info("Identity broker ready: issuer=%s", metadata.issuer)

    def ensure_ready(self) -> None:
        self._require_metadata()

    def _require_metadata(self) -> BrokerMetadata:
        if self._metadata is None:
            raise BrokerNotConfiguredError("Authentication service not available")
        return self._metadata

    def authorization_url(self, state: str, redirect_uri: str, acr_values: str) -> str:
        """Generate the Criipto authorization URL."""
        metadata = self._require_metadata()
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self._config.scope,
            "response_mode": "query",
            "state": state,
            "acr_values": acr_values,
        }
        return f"{metadata.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> IdentityClaims:
        """Exchange an authorization code and verify the returned ID token."""
        metadata = self._require_metadata()
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self._config.client_id,
        }

        try:
            response = await self._http.post(
                metadata.token_endpoint,
                data=data,
                auth=(self._config.client_id, self._config.client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            logger.warning("Broker token exchange timed out")
            raise BrokerUnavailableError("Identity broker timed out") from e
        except httpx.RequestError as e:
            logger.warning("Broker token exchange failed to connect: %s", e)
            raise BrokerUnavailableError("Failed to connect to identity broker") from e

        if response.status_code >= 500:
            logger.error("Broker token endpoint error: status=%d", response.status_code)
            raise BrokerUnavailableError(
                f"Identity broker token exchange failed: {response.status_code}"
            )

        try:
            token_data = response.json()
        except ValueError as e:
            raise BrokerAuthError("Identity broker returned an unreadable response") from e

        if response.status_code != 200 or "error" in token_data:
            error = token_data.get("error", "token_exchange_failed")
            logger.warning(
                "Broker refused code exchange: status=%d, error=%s", response.status_code, error
            )
            raise BrokerAuthError(
                token_data.get("error_description") or "Token exchange failed",
                detail={"broker_error": error},
            )

        id_token = token_data.get("id_token")
        if not id_token:
            raise BrokerAuthError("Identity broker response missing id_token")

        try:
            payload = await self._verify(id_token, audience=self._config.client_id)
        except _IdTokenRejected as e:
            raise BrokerAuthError("Identity token verification failed") from e
        return _claims_from_payload(payload)

    async def verify_native_token(self, id_token: str) -> IdentityClaims:
        """Verify an ID token the native app obtained directly from Criipto."""
        self._require_metadata()
        try:
            payload = await self._verify(id_token, audience=self._config.native_client_id)
        except _IdTokenRejected as e:
            raise InvalidIdentityTokenError("Invalid or expired token") from e
        return _claims_from_payload(payload)

    async def _verify(self, id_token: str, audience: str) -> dict[str, Any]:
        metadata = self._require_metadata()
        try:
            header = jwt.get_unverified_header(id_token)
        except jwt.InvalidTokenError as e:
            logger.info("Rejected malformed ID token: %s", e)
            raise _IdTokenRejected(str(e)) from e

        key = await self._signing_key(header.get("kid"))
        try:
            return jwt.decode(
                id_token,
                key=key.key,
                algorithms=_ALGORITHMS,
                audience=audience,
                issuer=metadata.issuer,
                leeway=_CLOCK_SKEW_SECONDS,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as e:
            logger.info("Rejected ID token: %s", e)
            raise _IdTokenRejected(str(e)) from e

    async def _signing_key(self, kid: str | None) -> jwt.PyJWK:
        """Find the signing key, refreshing the JWKS once if the kid is unknown."""
        key = self._find_key(kid)
        if key is not None:
            return key

        metadata = self._require_metadata()
        async with self._jwks_lock:
            key = self._find_key(kid)
            if key is None:
                try:
                    self._jwks = await self._fetch_jwks(metadata.jwks_uri)
                except (httpx.HTTPError, ValueError, jwt.PyJWTError) as e:
                    logger.warning("JWKS refresh failed: %s", e)
                    raise _IdTokenRejected("signing keys unavailable") from e
                key = self._find_key(kid)

        if key is None:
            raise _IdTokenRejected(f"unknown signing key {kid!r}")
        return key

    def _find_key(self, kid: str | None) -> jwt.PyJWK | None:
        if self._jwks is None:
            return None
        keys = self._jwks.keys
        if kid is None:
            return keys[0] if len(keys) == 1 else None
        return next((k for k in keys if k.key_id == kid), None)

    async def _fetch_jwks(self, jwks_uri: str) -> jwt.PyJWKSet:
        response = await self._http.get(jwks_uri)
        response.raise_for_status()
        return jwt.PyJWKSet.from_dict(response.json())


def _claims_from_payload(payload: dict[str, Any]) -> IdentityClaims:
    # Criipto exposes the Swedish personnummer as the "ssn" claim
    return IdentityClaims(
        subject=str(payload["sub"]),
        national_id=payload.get("ssn"),
        name=payload.get("name"),
        given_name=payload.get("given_name"),
        family_name=payload.get("family_name"),
        raw_data=payload,
    )
