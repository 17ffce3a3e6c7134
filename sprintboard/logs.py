"""Logging setup for the command line. Library modules only call logging.getLogger(__name__)."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    root = logging.getLogger("sprintboard")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
