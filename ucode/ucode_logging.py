from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, TextIO


def get_logger(name: str = "ucode") -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(
    *,
    level: str = "warning",
    format_name: str = "json",
    stream: Optional[TextIO] = None,
    log_dir: Optional[Path] = None,
    filename: str = "ucode.log",
) -> None:
    # stderr carries script diagnostics, so records only go somewhere when
    # a stream or a log directory is given.
    level_value = logging.getLevelName(level.strip().upper())
    if not isinstance(level_value, int):
        level_value = logging.WARNING
    root = get_logger()
    root.setLevel(level_value)
    if stream is None and log_dir is None:
        if not root.handlers:
            root.addHandler(logging.NullHandler())
        return

    for old in list(root.handlers):
        if isinstance(old, logging.NullHandler):
            root.removeHandler(old)
    if root.handlers:
        return

    if format_name == "json":
        formatter = logging.Formatter("%(message)s")
    else:
        formatter = logging.Formatter("%(levelname)s %(name)s %(message)s")
    if stream is None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_dir / filename, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.DEBUG, **fields: Any) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))
