"""Logging for devbox-docker.

Log records always go to stderr through rich; stdout is reserved for
command output such as the ``env`` JSON array and ``--dry-run`` plans.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from .console import err_console

_logger: logging.Logger | None = None
_handler: RichHandler | None = None


def get_logger() -> logging.Logger:
    """Get the package logger."""
    global _logger
    if _logger is None:
        pkg = (__package__ or __name__).split(".")[0]
        _logger = logging.getLogger(pkg)
    return _logger


def log_level(verbose: bool = False, quiet: bool = False) -> int:
    """Map command line verbosity to a logging level.

    ``verbose`` wins over ``quiet``; quiet commands still report warnings
    such as a failed init_hook.
    """
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Install the rich handler and set the level for this command.

    Args:
        verbose: Show debug records, including the commands being run.
        quiet: Only show warnings and errors.
    """
    global _handler
    logger = get_logger()
    level = log_level(verbose, quiet)

    # Replace rather than stack handlers when commands run in one process
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    _handler.setLevel(level)
    logger.addHandler(_handler)
    logger.setLevel(level)
