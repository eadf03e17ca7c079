import logging
import sys
from typing import Optional

from app.core.config import settings

# Top-level packages whose loggers belong to the agent
AGENT_LOGGERS = ("observability", "collector", "commands")

# Panic dumps (print_panics) are emitted at ERROR and must never be filtered
PANIC_LOGGER = "collector.panic"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route the agent's loggers to stdout at the configured level.

    The panic logger is kept at ERROR or lower so a quiet log level never
    hides the panic dumps print_panics asks for.
    """
    level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace whatever the host installed before us
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z"
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in AGENT_LOGGERS:
        agent_logger = logging.getLogger(name)
        agent_logger.setLevel(level)
        agent_logger.propagate = True

    logging.getLogger(PANIC_LOGGER).setLevel(min(level, logging.ERROR))

    # Every request is already timed by the interceptor
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
