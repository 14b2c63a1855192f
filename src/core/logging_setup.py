# src/core/logging_setup.py
"""
Process logging: stderr plus a best-effort rotating file (logs/bukken.log).

BUKKEN_DEBUG=1 (or true/yes/on) lowers the level to DEBUG, which also surfaces
the per-rule extraction misses.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_CONFIGURED = False
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "(%Y-%m-%d %H:%M:%S)"
LOG_FILE_NAME = "bukken.log"


def debug_enabled() -> bool:
    return os.getenv("BUKKEN_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def configure_logging(log_dir: str | Path = "logs", *, level: int | None = None) -> logging.Logger:
    """Install root handlers once; later calls only adjust the level."""
    global _CONFIGURED
    root = logging.getLogger()
    root.setLevel(level if level is not None else (logging.DEBUG if debug_enabled() else logging.INFO))
    if _CONFIGURED:
        return root

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_path = Path(log_dir) / LOG_FILE_NAME
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        handler.setFormatter(formatter)
        root.addHandler(handler)
    except OSError:
        # stderr logging keeps working without the file
        root.warning("could not open log file %s; logging to stderr only", log_path)

    _CONFIGURED = True
    return root
