"""Audit log port."""

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from vidacure.domain.shared.port import Port


@dataclass(frozen=True)
class AuditEntry:
    action: str
    resource: str = "user"
    account_id: str | None = None
    role: str | None = None
    resource_id: str | None = None
    success: bool = True
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLog(Port, Protocol):
    """Best-effort sink for security-relevant events.

    Implementations must never raise: an audit failure cannot fail a login.
    """

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None: ...
