"""Repository ports for the auth domain."""

from abc import abstractmethod
from typing import Protocol

from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import AccountId
from vidacure.domain.shared.port import Port


class AccountRepository(Port, Protocol):
    """Repository for the Account aggregate, indexed by id and by SSN hash."""

    @abstractmethod
    async def get(self, account_id: AccountId) -> Account | None:
        """Get an account by ID."""
        ...

    @abstractmethod
    async def get_by_ssn_hash(self, ssn_hash: str) -> Account | None:
        """Get the single account owning an SSN hash, whatever its role."""
        ...

    @abstractmethod
    async def insert_if_absent(self, account: Account) -> bool:
        """Insert an account unless its SSN hash is already taken.

        Returns:
            True if inserted, False if another account already owns the hash
        """
        ...

    @abstractmethod
    async def save(self, account: Account) -> None:
        """Update an existing account's mutable fields."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Make pending writes durable."""
        ...
