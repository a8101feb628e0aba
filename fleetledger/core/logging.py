"""
Structured logging setup.

Engines obtain bound loggers with ``structlog.get_logger(...)``; this module
only installs the processor chain once per process.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", json: bool = True) -> None:
    """
    Configure structlog for the ledger.

    Args:
        level: Minimum log level name (e.g. "INFO", "DEBUG")
        json: Render JSON lines when True, human-readable console output otherwise
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
