import logging
import sys
from typing import Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty per-request loggers from the market data and scheduling libraries
NOISY_LOGGERS = ("httpx", "httpcore", "yfinance", "peewee", "apscheduler.executors.default")


def setup_logging(level: str = "INFO", quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Configure application logging on stdout.

    Library loggers listed in `quiet` only report warnings and above,
    unless the application itself runs at DEBUG.
    """
    root_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if root_level <= logging.DEBUG:
        return
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
