"""
Logging configuration for Bramble.

Console records go to stderr through rich so the progress bar and tables on
stdout stay readable. Branch analyses run on worker threads, so the optional
log file records the thread alongside each message.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "bramble"

FILE_FORMAT = "%(asctime)s %(threadName)s %(name)s %(levelname)s: %(message)s"


def level_for(verbose: bool = False, quiet: bool = False) -> int:
    """Console level for the CLI verbosity flags; quiet wins."""
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG
    return logging.WARNING


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the ``bramble`` logger hierarchy.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging
        log_file: Optional file that receives every DEBUG and higher record,
            whatever the console level

    Returns:
        The root bramble logger
    """
    console_level = level_for(verbose, quiet)

    # Branch and author names are plain text, never markup
    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=True,
        show_path=verbose,
    )
    console_handler.setLevel(console_level)
    handlers: list[logging.Handler] = [console_handler]

    logger_level = console_level
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)
        logger_level = logging.DEBUG

    logging.basicConfig(format="%(message)s", datefmt="[%X]", handlers=handlers, force=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logger_level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the ``bramble`` namespace.

    Args:
        name: Module name (e.g., 'bramble.analysis.pipeline'). Names outside
              the namespace are nested under it. If None, returns the root
              bramble logger.
    """
    if name is None or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
