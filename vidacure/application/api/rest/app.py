import logging
from contextlib import asynccontextmanager

import logfire
from dishka import AsyncContainer
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from vidacure.application.api.v1.errors import status_for, vida_error_response
from vidacure.application.api.v1.routes import auth, health
from vidacure.application.di import create_container
from vidacure.config import Config, configure_logging
from vidacure.domain.auth.port.identity_broker import IdentityBroker
from vidacure.domain.auth.service.ssn import SsnHasher
from vidacure.domain.auth.service.token import TokenService
from vidacure.domain.shared.error import VidaError
from vidacure.infrastructure.persistence.database import create_schema
from vidacure.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate secrets, ensure the schema and load broker metadata before serving."""
    container: AsyncContainer = app.state.dishka_container
    config = await container.get(Config)

    # Both raise ConfigurationError when their secret is empty
    await container.get(TokenService)
    await container.get(SsnHasher)

    if config.database.auto_migrate:
        await create_schema(await container.get(AsyncEngine))

    broker = await container.get(IdentityBroker)
    await broker.initialize()

    try:
        yield
    finally:
        await container.close()


async def _handle_vida_error(request: Request, exc: VidaError) -> JSONResponse:
    if status_for(exc) >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    return vida_error_response(exc)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(config: Config | None = None, container: AsyncContainer | None = None) -> FastAPI:
    """Build the Vidacure API.

    Args:
        config: Settings to use; read from the environment when omitted.
        container: Prebuilt DI container, e.g. one with test providers.
    """
    config = config or Config()  # type: ignore[call-arg]
    configure_logging(config.logging)
    logger.info("Starting %s server v%s", config.server.name, config.server.version)

    app = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    logfire.instrument_httpx()
    logfire.instrument_fastapi(app)

    setup_dishka(container or create_container(config), app)

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")

    app.add_exception_handler(VidaError, _handle_vida_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)

    return app
