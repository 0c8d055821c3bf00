"""Logging setup for the command line and terminal UI."""

import logging
import logging.config


def setup_logging(level: str = "INFO") -> None:
    """Send log records from all bridgeattend modules to a Rich handler."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "rich": {"format": "%(name)s: %(message)s", "datefmt": "[%X]"},
            },
            "handlers": {
                "rich": {
                    "class": "rich.logging.RichHandler",
                    "formatter": "rich",
                    "rich_tracebacks": True,
                    "show_path": False,
                },
            },
            "loggers": {
                "bridgeattend": {
                    "handlers": ["rich"],
                    "level": level.upper(),
                    "propagate": False,
                },
            },
        }
    )
