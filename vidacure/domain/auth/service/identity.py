"""Identity resolution: broker claims to exactly one account."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import NationalId, Role
from vidacure.domain.auth.port.identity_broker import IdentityClaims
from vidacure.domain.auth.port.repository import AccountRepository
from vidacure.domain.auth.service.ssn import SsnHasher
from vidacure.domain.shared.error import InvalidIdentityClaimsError, StorageError
from vidacure.domain.shared.service import Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAccount:
    account: Account
    is_new_account: bool


def parse_national_id(value: str | None) -> NationalId:
    """Validate a personnummer, raising InvalidIdentityClaimsError if malformed."""
    if not value:
        raise InvalidIdentityClaimsError("Missing national identity number")
    try:
        return NationalId(value)
    except ValidationError as e:
        raise InvalidIdentityClaimsError("Invalid national identity number format") from e


class IdentityResolver(Service):
    """Finds or creates the single account owning a national identity.

    The SSN hash is the only lookup key and the account store enforces its
    uniqueness. The resolver commits before returning, so a caller never issues
    a session for an account that is not durably stored.
    """

    _account_repo: AccountRepository
    _ssn_hasher: SsnHasher

    async def resolve(self, claims: IdentityClaims) -> ResolvedAccount:
        national_id = parse_national_id(claims.national_id)
        ssn_hash = self._ssn_hasher.hash(national_id.root)

        existing = await self._account_repo.get_by_ssn_hash(ssn_hash)
        if existing is not None:
            return await self._login_existing(existing, claims)

        account = Account.create(
            ssn_hash=ssn_hash,
            role=Role.PATIENT,
            name=claims.name or "",
            given_name=claims.given_name or "",
            family_name=claims.family_name or "",
            logged_in=True,
        )
        if await self._account_repo.insert_if_absent(account):
            await self._account_repo.commit()
            logger.info("Created patient account %s", account.id)
            return ResolvedAccount(account=account, is_new_account=True)

        # Lost a first-login race: another request created the account meanwhile
        winner = await self._account_repo.get_by_ssn_hash(ssn_hash)
        if winner is None:
            raise StorageError("Account vanished after a uniqueness conflict")
        logger.info("Concurrent first login resolved to account %s", winner.id)
        return await self._login_existing(winner, claims)

    async def _login_existing(self, account: Account, claims: IdentityClaims) -> ResolvedAccount:
        account.record_login(
            name=claims.name,
            given_name=claims.given_name,
            family_name=claims.family_name,
        )
        await self._account_repo.save(account)
        await self._account_repo.commit()
        logger.info("Account %s (%s) logged in", account.id, account.role.value)
        return ResolvedAccount(account=account, is_new_account=False)
