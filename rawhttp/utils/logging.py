"""
Logging utilities for rawhttp.

The library only ever logs through the ``rawhttp`` logger; handlers are
installed by applications (the CLI calls :func:`setup_logging`).
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = 'rawhttp'

LOG_FORMAT = '%(asctime)s - %(name)s - %(filename)s:%(lineno)d - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Bodies and payloads longer than this are truncated in debug output
MAX_LOGGED_BYTES = 1024


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Set up logging for the application.

    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG)
        log_file: Optional file path to write logs to
        verbose: Whether to enable verbose logging

    Returns:
        Configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console = Console(stderr=True)
    console_handler = RichHandler(
        console=console,
        show_path=True,
        show_time=True,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.DEBUG if verbose else level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the library logger."""
    return logging.getLogger(LOGGER_NAME)


def _preview(data: bytes) -> str:
    text = data[:MAX_LOGGED_BYTES].decode('utf-8', errors='replace')
    if len(data) > MAX_LOGGED_BYTES:
        text += f"... ({len(data)} bytes)"
    return text


def log_raw_request(logger: logging.Logger, authority: str, payload: bytes) -> None:
    """Log a raw payload about to be written to ``authority``."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    logger.debug(f"Sending raw request to {authority} ({len(payload)} bytes)")
    logger.debug(_preview(payload))


def log_response(
    logger: logging.Logger,
    status_code: int,
    headers: list,
    body: bytes,
) -> None:
    """Log a response read back from the wire.

    Args:
        logger: Logger to use
        status_code: Response status code
        headers: Response headers as (name, value) byte pairs
        body: Response body
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return

    logger.debug(f"Received response: {status_code}")
    for name, value in headers:
        logger.debug(f"  {name.decode('latin-1')}: {value.decode('latin-1')}")
    logger.debug(f"  Body: {_preview(body)}" if body else "  Body: 0 bytes")
