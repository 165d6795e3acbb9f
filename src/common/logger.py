"""Logging utilities with rich output for the git-memory tools.

This module provides a centralized logging configuration that combines
Python's standard logging with rich's console output. All log output goes
to stderr: the prompt hook writes its context block to stdout and nothing
else may appear there.

Usage:
    from common.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Building trailer index...")
    logger.warning("Index is stale")
    logger.error("Failed to read git log", exc_info=True)
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

# Global console instance for consistent output (stderr, see module docstring)
console = Console(stderr=True)


def get_logger(
    name: str,
    level: str | None = None,
    show_time: bool = False,
    show_path: bool = False,
) -> logging.Logger:
    """Get a configured logger with rich output.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, uses environment variable LOG_LEVEL or defaults to INFO.
        show_time: Show timestamp in log output (default: False for clean CLI)
        show_path: Show file path in log output (default: False for clean CLI)

    Returns:
        Configured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Trailer index built")
        Trailer index built
    """
    logger = logging.getLogger(name)

    # Avoid adding multiple handlers if logger already configured
    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    logger.setLevel(level)

    rich_handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=True,
    )
    rich_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    logger.addHandler(rich_handler)

    # Allow propagation for test frameworks (pytest caplog)
    logger.propagate = True

    return logger


# Convenience functions for common CLI messages
def progress(message: str) -> None:
    """Print a progress message without the logger prefix."""
    console.print(message)


def success(message: str) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Trailer index is fresh")
        ✓ Trailer index is fresh
    """
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    """Print a warning message with yellow warning icon."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print an error message with red X icon."""
    console.print(f"[red]✗[/red] {message}")
