"""
Opt-in logging setup for programs built on relay.

The library itself only logs through module loggers (debug level) and never
installs handlers. Host programs call configure_logging() once, typically from
a flag hook of their root handler:

    class App(Handler):
        def flag_verbose(self):
            configure_logging(verbosity=2)
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = logging.WARNING


def configure_logging(verbosity=0, quiet=False, *, colorful=True):
    """
    Configure the root logger with a rich handler on stderr.

    Each verbosity step lowers the level by ten (WARNING → INFO → DEBUG);
    quiet overrides verbosity and only lets critical messages through.

    Returns the calculated level.
    """
    level = (
        logging.CRITICAL
        if quiet
        else max(logging.DEBUG, DEFAULT_LOG_LEVEL - (verbosity * 10))
    )
    handler = RichHandler(
        console=Console(stderr=True, no_color=not colorful),
        show_time=verbosity > 2,
        show_path=verbosity > 2,
        markup=False,
    )
    logging.basicConfig(
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=level,
        handlers=[handler],
        force=True,
    )
    return level


__all__ = (
    "DEFAULT_LOG_LEVEL",
    "configure_logging",
)
