"""
Rich logging setup shared by every module
"""
import logging
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback
from pricemyfloor.core.config import settings

# Locals stay hidden: request payloads carry contact details and payment ids
install_traceback(show_locals=False)

_console = Console()
_handler: Optional[RichHandler] = None


def _get_handler() -> RichHandler:
    """Build the single RichHandler every logger writes through."""
    global _handler
    if _handler is None:
        _handler = RichHandler(
            console=_console,
            show_time=True,
            show_path=True,
            show_level=True,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=True,  # Enable rich markup in log messages
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        _handler.setFormatter(logging.Formatter(fmt="%(message)s"))
    return _handler


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance with Rich formatting and colors.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level override (defaults to settings.log_level)

    Returns:
        Configured logger instance with RichHandler
    """
    logger = logging.getLogger(name)

    log_level = level.upper() if level else settings.log_level.upper()
    logger.setLevel(getattr(logging, log_level))

    handler = _get_handler()
    if handler not in logger.handlers:
        logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def get_shared_logger() -> logging.Logger:
    """
    Get the application-wide logger for events that don't belong to one module
    (startup, shutdown, pipeline summaries).
    """
    return get_logger("pricemyfloor")


app_logger = get_shared_logger()
