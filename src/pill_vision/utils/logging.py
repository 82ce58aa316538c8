# PillVision Logging

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _resolve_level(level: Union[int, str]) -> int:
    """Accept logging levels as ints or names ("debug", "INFO", ...)."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(name="PillVision", level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None):
    """Configures the application-wide logger.

    Console output goes to stdout. When ``log_file`` is given, a file handler
    is attached as well (one per path, repeated calls do not duplicate it).
    """
    level = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT)

    # Configure root so every pill_vision.* module logger inherits it.
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(formatter)
        root_logger.addHandler(ch)

    for handler in root_logger.handlers:
        handler.setLevel(level)
        if handler.formatter is None:
            handler.setFormatter(formatter)

    if log_file:
        target = str(Path(log_file).resolve())
        existing = [
            h for h in root_logger.handlers
            if isinstance(h, logging.FileHandler) and h.baseFilename == target
        ]
        if not existing:
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(target, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            root_logger.addHandler(fh)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = True
    return logger


def get_logger(name="PillVision"):
    return logging.getLogger(name)
