"""Server commands."""

import os
from pathlib import Path

import cyclopts
import uvicorn

from vidacure.cli.console import get_console
from vidacure.config import CONFIG_FILE_ENV

app = cyclopts.App(name="server", help="Run the HTTP server")


@app.default
def run(
    host: str = "0.0.0.0",
    port: int = 8000,
    config: Path | None = None,
    reload: bool = False,
) -> None:
    """Run the Vidacure API server in the foreground.

    Args:
        host: Host to bind to.
        port: Port to listen on.
        config: Optional YAML config file (sets VIDACURE_CONFIG_FILE).
        reload: Restart on code changes (development only).
    """
    console = get_console()

    if config is not None:
        if not config.exists():
            console.error(f"Config file not found: {config}")
            raise SystemExit(1)
        os.environ[CONFIG_FILE_ENV] = str(config.resolve())

    console.success(f"Serving on http://{host}:{port}")
    uvicorn.run(
        "vidacure.application.api.rest.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,  # configure_logging owns the root logger
    )
