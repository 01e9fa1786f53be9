"""Logging-Konfiguration für die CLI (Ausgabe über rich)."""

import logging

from rich.logging import RichHandler

from config.schema import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    logging.basicConfig(
        level=config.level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        force=True,
    )
