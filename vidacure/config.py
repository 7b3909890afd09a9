import logging
import os
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

CONFIG_FILE_ENV = "VIDACURE_CONFIG_FILE"
LOG_FILE_ENV = "VIDACURE_LOG_FILE"

# Loggers that are chatty at INFO and only interesting when something breaks
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite")


class YamlFileSource(PydanticBaseSettingsSource):
    """Settings read from the YAML file named by VIDACURE_CONFIG_FILE.

    A missing variable or file yields no values rather than an error.
    """

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._data = self._read()

    @staticmethod
    def _read() -> dict[str, Any]:
        location = os.environ.get(CONFIG_FILE_ENV)
        if not location or not Path(location).is_file():
            return {}
        return yaml.safe_load(Path(location).read_text()) or {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


class Frontend(BaseModel):
    url: str = "http://localhost:5173"  # Browser logins land here after the callback


class Server(BaseModel):
    name: str = "Vidacure"
    version: str = "0.1.0"
    description: str = "Patient and doctor backend with BankID authentication"


class DatabaseConfig(BaseModel):
    """Async SQLAlchemy URL; SQLite for development, PostgreSQL in production."""

    url: str = "sqlite+aiosqlite:///~/.vidacure/vidacure.db"
    echo: bool = False
    auto_migrate: bool = True  # Create missing tables at startup


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Log to this file instead of stderr when VIDACURE_LOG_FILE is set."""
        return os.environ.get(LOG_FILE_ENV)


class BrokerConfig(BaseModel):
    """OIDC identity broker (Criipto) configuration."""

    domain: str = ""  # e.g. "vidacure.criipto.id"
    client_id: str = ""  # Client used by the browser redirect flow
    app_client_id: str = ""  # Client the native app authenticates with; defaults to client_id
    client_secret: str = ""
    scope: str = "openid profile"

    @property
    def base_url(self) -> str:
        """Get the broker's base URL (https unless a scheme is given)."""
        if self.domain.startswith(("http://", "https://")):
            return self.domain.rstrip("/")
        return f"https://{self.domain}"

    @property
    def native_client_id(self) -> str:
        """Audience expected in ID tokens presented by the native app."""
        return self.app_client_id or self.client_id

    @property
    def is_configured(self) -> bool:
        return bool(self.domain and self.client_id and self.client_secret)


class SessionConfig(BaseModel):
    """Application session token configuration."""

    secret: str = ""  # Required; the server refuses to start without it
    algorithm: str = "HS256"
    ttl_minutes: int = 30
    audience: str = "authenticated"


class CookieConfig(BaseModel):
    """Attributes shared by the session, CSRF and OAuth state cookies."""

    secure: bool = False
    samesite: Literal["lax", "strict", "none"] = "lax"


class AuthConfig(BaseModel):
    callback_url: str = ""  # Full callback URL; derived from the request host when empty
    ssn_hash_secret: str = ""  # Required; changing it orphans every stored account
    state_ttl_seconds: int = 300
    session: SessionConfig = SessionConfig()
    cookies: CookieConfig = CookieConfig()


class Config(BaseSettings):
    """Process-wide settings, built once and handed to the DI container.

    Nested sections are overridden with ``__``, e.g.
    ``VIDACURE_AUTH__SESSION__SECRET`` or ``VIDACURE_BROKER__DOMAIN``.
    """

    server: Server = Server()
    frontend: Frontend = Frontend()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    broker: BrokerConfig = BrokerConfig()
    auth: AuthConfig = AuthConfig()

    model_config = {
        "env_prefix": "VIDACURE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "frozen": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Slot the YAML file between .env and secret files.

        Earlier sources win: constructor arguments, environment, .env, YAML,
        then secret files.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Install a single root handler (stderr, or VIDACURE_LOG_FILE when set).

    Safe to call more than once; previous root handlers are replaced.
    """
    handler: logging.Handler
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(config.level)
    handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(config.level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, file=%s", config.level, config.file
    )
