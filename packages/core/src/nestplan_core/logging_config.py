"""structlog setup for scripts and services embedding the engine."""

import logging
from typing import Optional

import structlog

from .config import NestplanConfig
from .exceptions import ConfigurationError


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog to drop events below ``level``.

    At DEBUG level each event also records the module and function that
    emitted it.

    Args:
        level: Level name (DEBUG, INFO, ...). Defaults to NESTPLAN_LOG_LEVEL.

    Raises:
        ConfigurationError: If the level name is unknown.
    """
    level_name = (level or NestplanConfig().log_level).upper().strip()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ConfigurationError(
            f"Unknown log level: {level_name}",
            config_key="log_level",
            expected="DEBUG, INFO, WARNING, ERROR or CRITICAL",
            actual=level_name,
        )

    processors = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if NestplanConfig(log_level=level_name).is_debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
    processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
