"""Command line entry point for the exporter."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
import uvicorn

from .config import DEFAULT_CONFIG_PATH, load_settings
from .errors import FatalStartupError
from .main import create_app

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

app = typer.Typer(
    name="jwt-exporter",
    help="Export claims of JWTs stored in Kubernetes secrets as Prometheus metrics.",
    add_completion=False,
)


def _parse_level(value: str) -> int:
    try:
        return LOG_LEVELS[value.lower()]
    except KeyError as exc:
        raise typer.BadParameter(
            f"expected one of: {', '.join(sorted(LOG_LEVELS))}"
        ) from exc


def configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def run(
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        envvar="JWT_EXPORTER_CONFIG",
        help="Path to the configuration file",
    ),
    level: str = typer.Option(
        "info",
        "--level",
        help="Log level (debug, info, warn, error, dpanic, panic, fatal)",
    ),
) -> None:
    """Load the configuration and serve metrics until interrupted."""
    log_level = _parse_level(level)
    configure_logging(log_level)

    try:
        settings = load_settings(config)
    except FatalStartupError as exc:
        LOGGER.critical(str(exc), extra={"config_path": str(config)})
        raise typer.Exit(1) from exc

    LOGGER.info("Loaded configuration", extra={"config": settings.model_dump(mode="json")})
    uvicorn.run(
        create_app(settings),
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=logging.getLevelName(log_level).lower(),
    )


def main() -> None:
    app(prog_name="jwt-exporter")


if __name__ == "__main__":
    main()
