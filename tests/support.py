"""Shared builders and fakes for tests."""

import asyncio
from urllib.parse import urlencode

from vidacure.config import SessionConfig
from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import AccountId, Role
from vidacure.domain.auth.port.identity_broker import IdentityBroker, IdentityClaims
from vidacure.domain.auth.port.repository import AccountRepository
from vidacure.domain.auth.service.ssn import SsnHasher
from vidacure.domain.auth.service.token import TokenService
from vidacure.domain.shared.error import (
    BrokerAuthError,
    BrokerNotConfiguredError,
    InvalidIdentityTokenError,
)

SESSION_SECRET = "test-session-secret-for-unit-tests-32"
SSN_SECRET = "test-ssn-hash-secret"

PATIENT_SSN = "199001011234"
DOCTOR_SSN = "197505059876"


def make_token_service(secret: str = SESSION_SECRET, ttl_minutes: int = 30) -> TokenService:
    """Create a TokenService with test config."""
    return TokenService(_config=SessionConfig(secret=secret, ttl_minutes=ttl_minutes))


def make_ssn_hasher(secret: str = SSN_SECRET) -> SsnHasher:
    return SsnHasher(_secret=secret)


def make_claims(
    national_id: str | None = PATIENT_SSN,
    name: str = "Anna Andersson",
    given_name: str = "Anna",
    family_name: str = "Andersson",
) -> IdentityClaims:
    return IdentityClaims(
        subject="broker-subject-1",
        national_id=national_id,
        name=name,
        given_name=given_name,
        family_name=family_name,
    )


def make_account(role: Role = Role.PATIENT, ssn: str = PATIENT_SSN, name: str = "Anna") -> Account:
    return Account.create(
        ssn_hash=make_ssn_hasher().hash(ssn),
        role=role,
        name=name,
        given_name=name,
        family_name="Andersson",
    )


class InMemoryAccountRepository(AccountRepository):
    """Account store backed by a dict shared between instances.

    When ``race_barrier`` is set, the first lookup of each of two concurrent
    resolutions waits on it, so both observe the hash as unclaimed.
    """

    def __init__(
        self,
        store: dict[str, Account] | None = None,
        race_barrier: asyncio.Barrier | None = None,
    ) -> None:
        self.store = store if store is not None else {}
        self.race_barrier = race_barrier
        self.commits = 0
        self._lookups = 0

    async def get(self, account_id: AccountId) -> Account | None:
        return next((a for a in self.store.values() if a.id == account_id), None)

    async def get_by_ssn_hash(self, ssn_hash: str) -> Account | None:
        found = self.store.get(ssn_hash)
        self._lookups += 1
        if self.race_barrier is not None and self._lookups == 1:
            await self.race_barrier.wait()
        return found.model_copy(deep=True) if found else None

    async def insert_if_absent(self, account: Account) -> bool:
        if account.ssn_hash in self.store:
            return False
        self.store[account.ssn_hash] = account.model_copy(deep=True)
        return True

    async def save(self, account: Account) -> None:
        self.store[account.ssn_hash] = account.model_copy(deep=True)

    async def commit(self) -> None:
        self.commits += 1


class FakeIdentityBroker(IdentityBroker):
    """Broker double: codes and native tokens map to canned claims."""

    def __init__(
        self,
        codes: dict[str, IdentityClaims] | None = None,
        native_tokens: dict[str, IdentityClaims] | None = None,
        ready: bool = True,
    ) -> None:
        self.codes = codes or {}
        self.native_tokens = native_tokens or {}
        self.ready = ready
        self.exchanged: list[tuple[str, str]] = []

    async def initialize(self) -> None:
        return None

    def ensure_ready(self) -> None:
        if not self.ready:
            raise BrokerNotConfiguredError("Authentication service not available")

    def authorization_url(self, state: str, redirect_uri: str, acr_values: str) -> str:
        params = {"state": state, "redirect_uri": redirect_uri, "acr_values": acr_values}
        return f"https://broker.test/oauth2/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> IdentityClaims:
        self.exchanged.append((code, redirect_uri))
        if code not in self.codes:
            raise BrokerAuthError("Token exchange failed", detail={"broker_error": "invalid_grant"})
        return self.codes[code]

    async def verify_native_token(self, id_token: str) -> IdentityClaims:
        if id_token not in self.native_tokens:
            raise InvalidIdentityTokenError("Invalid or expired token")
        return self.native_tokens[id_token]
