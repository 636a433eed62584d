"""Diagnostic logging configuration using loguru."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "{extra}"
)

VALID_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru sinks for engine diagnostics.

    Engine code logs through `logger.bind(...)` with phase, round and player
    fields; they show up in the `{extra}` column.

    Args:
        log_level: Minimum level to emit.
        log_dir: Directory for a rotating log file. No file sink when None.
        console_output: Log to stderr.
        rotation: When to rotate the log file.
        retention: How long to keep rotated files.

    Raises:
        ValueError: If log_level is invalid.
    """
    level = log_level.upper()
    if level not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: '{log_level}'. Must be one of: {', '.join(VALID_LEVELS)}")

    logger.remove()

    if console_output:
        logger.add(sys.stderr, format=DEFAULT_FORMAT, level=level, colorize=True)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path / "werewolf_{time:YYYY-MM-DD}.log"),
            format=DEFAULT_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            enqueue=True,  # Thread-safe
        )

    logger.debug(f"Logging configured: level={level}, console={console_output}, dir={log_dir}")
