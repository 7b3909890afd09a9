"""Unit tests for IdentityResolver."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from tests.support import (
    DOCTOR_SSN,
    PATIENT_SSN,
    InMemoryAccountRepository,
    make_account,
    make_claims,
    make_ssn_hasher,
)
from vidacure.domain.auth.model.value import Role
from vidacure.domain.auth.service.identity import IdentityResolver
from vidacure.domain.shared.error import InvalidIdentityClaimsError, StorageError


def make_resolver(repo: InMemoryAccountRepository | AsyncMock) -> IdentityResolver:
    return IdentityResolver(_account_repo=repo, _ssn_hasher=make_ssn_hasher())


class TestIdentityResolverValidation:
    """Malformed national IDs are rejected before any store access."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "national_id",
        [None, "", "19900101-1234", "9001011234", "1990010112345", "19900101123X"],
    )
    async def test_rejects_malformed_national_id(self, national_id: str | None):
        repo = AsyncMock()

        with pytest.raises(InvalidIdentityClaimsError):
            await make_resolver(repo).resolve(make_claims(national_id=national_id))

        repo.get_by_ssn_hash.assert_not_called()
        repo.insert_if_absent.assert_not_called()
        repo.commit.assert_not_called()


class TestIdentityResolverResolve:
    """Tests for find-or-create behaviour."""

    @pytest.mark.asyncio
    async def test_first_login_creates_patient(self):
        repo = InMemoryAccountRepository()

        resolved = await make_resolver(repo).resolve(make_claims())

        assert resolved.is_new_account is True
        assert resolved.account.role == Role.PATIENT
        assert resolved.account.name == "Anna Andersson"
        assert resolved.account.last_login_at is not None
        assert resolved.account.ssn_hash == make_ssn_hasher().hash(PATIENT_SSN)
        assert repo.commits == 1
        assert len(repo.store) == 1

    @pytest.mark.asyncio
    async def test_second_login_reuses_account(self):
        repo = InMemoryAccountRepository()
        resolver = make_resolver(repo)

        first = await resolver.resolve(make_claims())
        second = await resolver.resolve(make_claims(name="Anna B. Andersson"))

        assert second.is_new_account is False
        assert second.account.id == first.account.id
        assert second.account.name == "Anna B. Andersson"
        assert second.account.created_at == first.account.created_at
        assert len(repo.store) == 1

    @pytest.mark.asyncio
    async def test_provisioned_doctor_keeps_role(self):
        doctor = make_account(role=Role.DOCTOR, ssn=DOCTOR_SSN, name="Dr Berg")
        repo = InMemoryAccountRepository({doctor.ssn_hash: doctor})

        resolved = await make_resolver(repo).resolve(make_claims(national_id=DOCTOR_SSN))

        assert resolved.is_new_account is False
        assert resolved.account.id == doctor.id
        assert resolved.account.role == Role.DOCTOR
        assert resolved.account.last_login_at is not None

    @pytest.mark.asyncio
    async def test_missing_name_claims_keep_stored_names(self):
        account = make_account(name="Anna")
        repo = InMemoryAccountRepository({account.ssn_hash: account})

        resolved = await make_resolver(repo).resolve(
            make_claims(name="", given_name="", family_name="")
        )

        assert resolved.account.name == "Anna"

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self):
        repo = AsyncMock()
        repo.get_by_ssn_hash.return_value = None
        repo.insert_if_absent.return_value = True
        repo.commit.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            await make_resolver(repo).resolve(make_claims())

    @pytest.mark.asyncio
    async def test_lost_race_rereads_winner(self):
        """A uniqueness conflict turns into a login of the winning account."""
        winner = make_account()
        repo = AsyncMock()
        repo.get_by_ssn_hash.side_effect = [None, winner]
        repo.insert_if_absent.return_value = False

        resolved = await make_resolver(repo).resolve(make_claims())

        assert resolved.is_new_account is False
        assert resolved.account.id == winner.id
        repo.save.assert_awaited_once()
        repo.commit.assert_awaited_once()


class TestConcurrentFirstLogin:
    @pytest.mark.asyncio
    async def test_two_concurrent_first_logins_yield_one_account(self):
        """Both attempts succeed and agree on a single account."""
        store: dict = {}
        barrier = asyncio.Barrier(2)
        resolver_a = make_resolver(InMemoryAccountRepository(store, race_barrier=barrier))
        resolver_b = make_resolver(InMemoryAccountRepository(store, race_barrier=barrier))

        first, second = await asyncio.gather(
            resolver_a.resolve(make_claims()),
            resolver_b.resolve(make_claims()),
        )

        assert len(store) == 1
        assert first.account.id == second.account.id
        assert sorted([first.is_new_account, second.is_new_account]) == [False, True]
