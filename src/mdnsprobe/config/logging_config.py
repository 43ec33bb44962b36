from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def level_from_name(name: Optional[str], default: int = logging.WARNING) -> int:
    """Map a level name such as 'debug' or 'warn' to a logging constant."""
    if name is None:
        return default
    return _LEVELS.get(str(name).lower(), default)


class BracketLevelFormatter(logging.Formatter):
    """Custom formatter that adds bracketed lowercase level tags and UTC timestamps."""

    _TAGS = {
        logging.DEBUG: "[debug]",
        logging.INFO: "[info]",
        logging.WARNING: "[warn]",
        logging.ERROR: "[error]",
        logging.CRITICAL: "[crit]",
    }

    def formatTime(self, record, datefmt=None):
        """Format the record's creation time as UTC ISO-8601 with Z suffix."""
        return datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    def format(self, record):
        """Add level_tag attribute and format the record."""
        record.level_tag = self._TAGS.get(record.levelno, f"[lvl{record.levelno}]")
        return super().format(record)


def _build_handlers(cfg: Dict[str, Any]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if cfg.get("stderr", True):
        handlers.append(logging.StreamHandler(sys.stderr))

    file_path = cfg.get("file")
    if isinstance(file_path, str) and file_path.strip():
        path = os.path.abspath(os.path.expanduser(file_path.strip()))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))
    return handlers


def init_logging(cfg: Optional[Dict[str, Any]]) -> None:
    """Brief: Point the root logger at stderr and/or a log file.

    Inputs:
      - cfg: the `logging:` block of the probe config (may be None):
          - level: debug | info | warn | error | crit (default warn)
          - stderr: bool, default True
          - file: optional path, parent directories are created

    Outputs:
      - None; replaces any handlers already on the root logger.

    Notes:
      - Service lines own stdout, so no handler ever writes there.

    Example (probe.yaml):
      logging:
        level: debug
        stderr: false
        file: ~/mdnsprobe.log
    """
    cfg = cfg or {}

    root = logging.getLogger()
    root.setLevel(level_from_name(cfg.get("level")))
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = BracketLevelFormatter(
        fmt="%(asctime)s %(level_tag)s %(name)s: %(message)s"
    )
    for handler in _build_handlers(cfg):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
