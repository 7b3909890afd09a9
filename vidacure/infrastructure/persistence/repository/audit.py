"""SQL audit log sink."""

import logging
import re
from datetime import UTC, datetime

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import Request

from vidacure.domain.auth.port.audit import AuditEntry, AuditLog
from vidacure.infrastructure.persistence.tables import audit_logs_table

logger = logging.getLogger(__name__)

_FORWARDED_FOR = re.compile(r'for="?\[?([^;,"\]]+)', re.IGNORECASE)


def client_ip(request: Request) -> str | None:
    """Best guess at the caller's address, honouring common proxy headers."""
    headers = request.headers
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    for name in ("x-real-ip", "x-client-ip"):
        value = headers.get(name)
        if value:
            return value.strip()
    forwarded = headers.get("forwarded")
    if forwarded:
        match = _FORWARDED_FOR.search(forwarded)
        if match:
            return match.group(1).strip()
    return request.client.host if request.client else None


class SqlAuditLog(AuditLog):
    """Writes audit entries in a session of their own.

    Audit rows must not ride on the request's transaction: a rolled-back login
    still leaves its failure entry behind. Write failures are logged and dropped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._ip_address = ip_address
        self._user_agent = user_agent

    @classmethod
    def for_request(
        cls, session_factory: async_sessionmaker[AsyncSession], request: Request
    ) -> "SqlAuditLog":
        return cls(
            session_factory,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )

    async def record(self, entry: AuditEntry) -> None:
        row = {
            "account_id": entry.account_id,
            "role": entry.role,
            "action": entry.action,
            "resource": entry.resource,
            "resource_id": entry.resource_id,
            "ip_address": self._ip_address,
            "user_agent": self._user_agent,
            "success": entry.success,
            "error_message": entry.error_message,
            "metadata": entry.metadata or None,
            "created_at": datetime.now(UTC),
        }
        try:
            async with self._session_factory() as session:
                await session.execute(insert(audit_logs_table).values(**row))
                await session.commit()
        except Exception:
            logger.exception("Failed to write audit entry action=%s", entry.action)
