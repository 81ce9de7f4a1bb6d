"""
Logging configuration using loguru.

Pretty-printed output for interactive runs, JSON output when the indexer
runs under a scheduler or container log collector.
"""

import sys

from loguru import logger

from galactic_archive.config.settings import settings


def _text_formatter(record: dict) -> str:
    """Format log record for text output, conditionally showing extras.

    Only includes the {extra} section if it contains data, preventing
    empty braces from appearing in logs.
    """
    base_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    if record["extra"]:
        base_format += " | {extra}"

    return base_format + "\n{exception}"


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure loguru logger.

    Sets up logging based on GALACTIC_LOG_LEVEL and GALACTIC_LOG_FORMAT,
    unless the command line overrides them (--log-level, --log-format):
    - text format: Pretty-printed colorful logs to stdout
    - json format: JSON-formatted logs to stdout for log collectors
    """
    logger.remove()

    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    if log_format == "text":
        logger.add(
            sys.stdout,
            format=_text_formatter,
            level=level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stdout,
            format="{message}",
            level=level,
            serialize=True,  # JSON output
        )

    logger.info(f"Logging configured (level={level}, format={log_format})")
