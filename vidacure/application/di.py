from dishka import AsyncContainer, Provider, from_context, make_async_container

from vidacure.config import Config
from vidacure.domain.auth.util.di import AuthProvider
from vidacure.infrastructure.auth import AuthInfraProvider
from vidacure.infrastructure.persistence import PersistenceProvider
from vidacure.util.di.scope import Scope


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None, *extra: Provider) -> AsyncContainer:
    """Build the application container.

    Providers passed in ``extra`` are registered last and override earlier
    factories for the same type.
    """
    if config is None:
        # Pydantic Settings populates from env vars at runtime
        config = Config()  # type: ignore[call-arg]

    return make_async_container(
        ConfigProvider(),
        PersistenceProvider(),
        AuthProvider(),
        AuthInfraProvider(),
        *extra,
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
