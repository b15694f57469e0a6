"""
Logging configuration utilities.

Library modules only create named loggers (``IntakeQueue``,
``IntakeWorkflow``, ``VinDecode`` ...); handlers are attached here, by the
command-line entry point or by an embedding application.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# HTTP client internals log every connection at DEBUG
_NOISY_LOGGERS = ("urllib3", "requests")


def parse_level(name: Optional[str], default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its number; unknown names give ``default``."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level: int
        Logging level (e.g. ``logging.INFO``).
    log_file: Optional[str]
        Optional path of a log file written in addition to stderr. Its
        directory is created if needed.
    """
    handlers: list = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
