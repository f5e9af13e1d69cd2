"""
Logging setup for programs built on hiercmd.

Library modules only create loggers (logging.getLogger(__name__)) and never
install handlers. Entry points call configure_logging() once; records then go
to stderr through rich's RichHandler so they never mix with table output on
stdout.
"""
import logging
import logging.config
import os

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LEVEL = "WARNING"


def _stderr_handler(**options):
    return RichHandler(console=Console(stderr=True), **options)


def configure_logging(*, level=None, capture_warnings=True):
    """
    Call once from entry points (the example program, scripts, tests that
    want records on screen). Library code must not call this.

    The level comes from the argument, then HIERCMD_LOG_LEVEL, then LOG_LEVEL,
    then WARNING.
    """
    level = (level or os.getenv("HIERCMD_LOG_LEVEL") or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL).upper()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rich": {"format": "%(name)s: %(message)s", "datefmt": "[%X]"},
        },
        "handlers": {
            "console": {
                "()": _stderr_handler,
                "formatter": "rich",
                "show_path": False,
                "rich_tracebacks": True,
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }

    logging.config.dictConfig(config)

    if capture_warnings:
        logging.captureWarnings(True)
