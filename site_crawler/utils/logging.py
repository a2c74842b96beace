"""
Logging configuration and utilities.

Console output is human readable by default; ``json_format`` switches every
handler to one JSON object per line rendered through structlog.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog

from site_crawler.utils.errors import ConfigurationError


# Finer than DEBUG: per-worker handoff chatter
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _level_from_name(log_level: str) -> int:
    name = str(log_level).upper()
    if name not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level {log_level!r}", {"supported": LOG_LEVELS})
    if name == "TRACE":
        return TRACE
    return getattr(logging, name)


def _json_formatter() -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
        ],
    )


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    retention_days: int = 7
) -> None:
    """
    Set up logging for the application.

    Args:
        log_level: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Render records as JSON lines instead of plain text
        log_file: Optional log file path, rotated daily
        retention_days: Number of rotated log files to keep
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_level_from_name(log_level))

    # Clear existing handlers
    root_logger.handlers.clear()

    # Logs go to stderr so stdout stays clean for results
    console_handler = logging.StreamHandler(sys.stderr)
    if json_format:
        console_handler.setFormatter(_json_formatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8'
        )
        file_handler.suffix = "%Y-%m-%d"

        if json_format:
            file_handler.setFormatter(_json_formatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
            ))
        root_logger.addHandler(file_handler)

    # Third-party chatter stays at WARNING unless we trace
    if root_logger.level > TRACE:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Standard library logger
    """
    return logging.getLogger(name)


def trace(logger: logging.Logger, message: str) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, message)
