"""Query handler for the authenticated caller's own account."""

from datetime import datetime

from vidacure.domain.auth.model.value import AccountId, ClientType, Role
from vidacure.domain.auth.port.audit import AuditEntry, AuditLog
from vidacure.domain.auth.port.repository import AccountRepository
from vidacure.domain.shared.error import NotAuthenticatedError
from vidacure.domain.shared.query import Query, QueryHandler, Result


class GetCurrentAccount(Query):
    account_id: AccountId
    client_type: ClientType


class CurrentAccount(Result):
    id: str
    name: str
    given_name: str
    family_name: str
    role: Role
    last_login_at: datetime | None
    has_completed_onboarding: bool


class GetCurrentAccountHandler(QueryHandler[GetCurrentAccount, CurrentAccount]):
    account_repo: AccountRepository
    audit_log: AuditLog

    async def run(self, query: GetCurrentAccount) -> CurrentAccount:
        account = await self.account_repo.get(query.account_id)
        if account is None:
            # Token is valid but the account is gone; treat the session as dead
            raise NotAuthenticatedError("User not found", code="account_not_found")

        await self.audit_log.record(
            AuditEntry(
                action="get_current_user",
                account_id=str(account.id),
                role=account.role.value,
                resource_id=str(account.id),
                metadata={"client_type": query.client_type.value},
            )
        )

        return CurrentAccount(
            id=str(account.id),
            name=account.name,
            given_name=account.given_name,
            family_name=account.family_name,
            role=account.role,
            last_login_at=account.last_login_at,
            has_completed_onboarding=account.has_completed_onboarding,
        )
