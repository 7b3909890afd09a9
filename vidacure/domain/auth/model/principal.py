"""Principal: the authenticated caller, resolved per request."""

from dataclasses import dataclass

from vidacure.domain.auth.model.value import AccountId, ClientType, Role


@dataclass(frozen=True)
class Principal:
    """The authenticated identity of the current requester.

    Built by the access gate from a verified session token. Immutable.
    """

    account_id: AccountId
    role: Role
    client_type: ClientType

    def has_any_role(self, *roles: Role) -> bool:
        return self.role in roles
