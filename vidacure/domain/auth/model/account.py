"""Account aggregate for the auth domain."""

from datetime import UTC, datetime

from vidacure.domain.auth.model.value import AccountId, Role
from vidacure.domain.shared.model.entity import Aggregate


class Account(Aggregate):
    """A patient or doctor known to Vidacure.

    Patients are created on their first BankID login; doctors are provisioned
    out-of-band. Both share one identity shape and one identity index.

    Invariants:
    - `id` and `ssn_hash` are immutable after creation
    - `role` is fixed at creation
    - name fields change only through re-authentication
    """

    id: AccountId
    ssn_hash: str
    role: Role
    name: str
    given_name: str = ""
    family_name: str = ""
    status: str = "active"
    has_completed_onboarding: bool = False
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    @classmethod
    def create(
        cls,
        ssn_hash: str,
        role: Role,
        name: str,
        given_name: str = "",
        family_name: str = "",
        logged_in: bool = False,
    ) -> "Account":
        now = datetime.now(UTC)
        return cls(
            id=AccountId.generate(),
            ssn_hash=ssn_hash,
            role=role,
            name=name,
            given_name=given_name,
            family_name=family_name,
            created_at=now,
            updated_at=now,
            last_login_at=now if logged_in else None,
        )

    def record_login(
        self,
        name: str | None = None,
        given_name: str | None = None,
        family_name: str | None = None,
    ) -> None:
        """Refresh display attributes from fresh claims and stamp the login time."""
        if name:
            self.name = name
        if given_name:
            self.given_name = given_name
        if family_name:
            self.family_name = family_name
        now = datetime.now(UTC)
        self.last_login_at = now
        self.updated_at = now
