"""
Logging configuration for the calculator.

Diagnostics (faults, interrupts, ``quit``) go through the ``rpncalc``
logger so they stay off stdout, where ``print`` results are written.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    name: str = "rpncalc",
    level: Optional[int] = None,
    console_level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure and return a logger.

    Console output uses rich on stderr at ``console_level``. When
    ``log_file`` is given, everything down to DEBUG is also written there.
    ``level`` defaults to the lowest level any handler needs.
    Safe to call repeatedly: existing handlers are reused, never duplicated.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = logging.DEBUG if log_file is not None else console_level
    logger.setLevel(level)

    console = next((h for h in logger.handlers if isinstance(h, RichHandler)), None)
    if console is None:
        console = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        logger.addHandler(console)
    console.setLevel(console_level)

    if log_file is not None:
        path = Path(log_file).resolve()
        if not any(isinstance(h, logging.FileHandler) and h.baseFilename == str(path)
                   for h in logger.handlers):
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(path), encoding="utf-8")
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            logger.addHandler(fh)
            logger.debug("Log file: %s", path)

    return logger
