"""Value objects for the auth domain."""

import re
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import RootModel, field_validator


class AccountId(RootModel[UUID]):
    """Unique identifier for an Account."""

    @classmethod
    def generate(cls) -> "AccountId":
        return cls(uuid4())

    def __str__(self) -> str:
        return str(self.root)

    def __hash__(self) -> int:
        return hash(self.root)


class Role(StrEnum):
    """Account role. Fixed when the account is created."""

    PATIENT = "patient"
    DOCTOR = "doctor"


class ClientType(StrEnum):
    """Kind of client a request comes from. Values match the ``x-client`` header."""

    WEB = "web"
    MOBILE_BROWSER = "mobile"
    NATIVE_APP = "app"

    @property
    def uses_cookies(self) -> bool:
        """Browsers carry the session in cookies; the native app sends a bearer token."""
        return self is not ClientType.NATIVE_APP


# Swedish personnummer in its 12-digit form: YYYYMMDDNNNN
NATIONAL_ID_PATTERN = re.compile(r"^\d{12}$")


class NationalId(RootModel[str]):
    """A Swedish national identity number (personnummer, 12 digits).

    Held in memory only while an identity is being resolved. The repr is masked
    so the value cannot leak through logs or tracebacks.
    """

    @field_validator("root")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if not NATIONAL_ID_PATTERN.match(v):
            raise ValueError("National ID must be exactly 12 digits (YYYYMMDDNNNN)")
        return v

    def __str__(self) -> str:
        return self.root

    def __repr__(self) -> str:
        return "NationalId(****)"


@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of an application session token."""

    account_id: AccountId
    role: Role
    issued_at: int
    expires_at: int
    token_id: str
