"""DI provider for auth infrastructure."""

from typing import AsyncIterable

import httpx
from dishka import provide
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import Request

from vidacure.config import Config
from vidacure.domain.auth.port.audit import AuditLog
from vidacure.domain.auth.port.identity_broker import IdentityBroker
from vidacure.infrastructure.auth.criipto import CriiptoIdentityBroker
from vidacure.infrastructure.persistence.repository.audit import SqlAuditLog
from vidacure.util.di.base import Provider
from vidacure.util.di.scope import Scope

# HTTP client timeout configuration
_HTTP_TIMEOUT = httpx.Timeout(
    connect=5.0,  # Connection timeout
    read=10.0,  # Read timeout
    write=5.0,  # Write timeout
    pool=5.0,  # Pool timeout
)


class AuthInfraProvider(Provider):
    """DI provider for auth infrastructure adapters."""

    @provide(scope=Scope.APP)
    async def get_auth_http_client(self) -> AsyncIterable[httpx.AsyncClient]:
        """Shared HTTP client for broker calls (connection pooling)."""
        async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT) as client:
            yield client

    @provide(scope=Scope.APP)
    def get_identity_broker(
        self, config: Config, http_client: httpx.AsyncClient
    ) -> IdentityBroker:
        """Provide the broker. Metadata is loaded by the app lifespan."""
        return CriiptoIdentityBroker(config=config.broker, http_client=http_client)

    @provide(scope=Scope.UOW)
    def get_audit_log(
        self, session_factory: async_sessionmaker[AsyncSession], request: Request
    ) -> AuditLog:
        return SqlAuditLog.for_request(session_factory, request)
