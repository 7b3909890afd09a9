"""SQL repository implementation for accounts."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import AccountId, Role
from vidacure.domain.auth.port.repository import AccountRepository
from vidacure.domain.shared.error import StorageError
from vidacure.infrastructure.persistence.tables import accounts_table

_MUTABLE_COLUMNS = (
    "name",
    "given_name",
    "family_name",
    "status",
    "has_completed_onboarding",
    "updated_at",
    "last_login_at",
)


def _row_to_account(row: dict) -> Account:
    """Convert a database row to an Account model."""
    return Account(
        id=AccountId(UUID(row["id"])),
        ssn_hash=row["ssn_hash"],
        role=Role(row["role"]),
        name=row["name"],
        given_name=row["given_name"],
        family_name=row["family_name"],
        status=row["status"],
        has_completed_onboarding=row["has_completed_onboarding"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_login_at=row["last_login_at"],
    )


def _account_to_dict(account: Account) -> dict:
    """Convert an Account model to a database row dict."""
    return {
        "id": str(account.id),
        "ssn_hash": account.ssn_hash,
        "role": account.role.value,
        "name": account.name,
        "given_name": account.given_name,
        "family_name": account.family_name,
        "status": account.status,
        "has_completed_onboarding": account.has_completed_onboarding,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
        "last_login_at": account.last_login_at,
    }


class SqlAccountRepository(AccountRepository):
    """SQLAlchemy implementation of AccountRepository (SQLite and PostgreSQL)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, account_id: AccountId) -> Account | None:
        stmt = select(accounts_table).where(accounts_table.c.id == str(account_id))
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        return _row_to_account(dict(row)) if row else None

    async def get_by_ssn_hash(self, ssn_hash: str) -> Account | None:
        stmt = select(accounts_table).where(accounts_table.c.ssn_hash == ssn_hash)
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        return _row_to_account(dict(row)) if row else None

    async def insert_if_absent(self, account: Account) -> bool:
        dialect = self.session.get_bind().dialect.name
        dialect_insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = (
            dialect_insert(accounts_table)
            .values(**_account_to_dict(account))
            .on_conflict_do_nothing(index_elements=["ssn_hash"])
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError("Failed to insert account") from e
        return result.rowcount == 1

    async def save(self, account: Account) -> None:
        row = _account_to_dict(account)
        stmt = (
            update(accounts_table)
            .where(accounts_table.c.id == str(account.id))
            .values(**{col: row[col] for col in _MUTABLE_COLUMNS})
        )
        try:
            await self.session.execute(stmt)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StorageError("Failed to update account") from e

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError("Failed to commit account changes") from e
