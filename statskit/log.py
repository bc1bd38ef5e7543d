"""Pluggable diagnostic logging used across the package."""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, Callable, Mapping, Optional

Handler = Callable[[str, Optional[Mapping[str, Any]], Optional[BaseException]], None]

_PREFIX = "[statskit] "


def _default_handler(
    msg: str, fields: Optional[Mapping[str, Any]], err: Optional[BaseException]
) -> None:
    """Write a tab separated line with the message and its fields to stderr."""
    values = dict(fields) if fields else {}
    if err is not None:
        values["error"] = str(err)
    line = "\t".join([msg, *(f"{key}={value}" for key, value in values.items())])
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    sys.stderr.write(f"{_PREFIX}{stamp} {line}\n")


_lock = threading.Lock()
_handler: Handler = _default_handler


def set_handler(handler: Optional[Handler]) -> None:
    """Replace the log handler; ``None`` restores the default stderr handler."""
    global _handler
    with _lock:
        _handler = handler if handler is not None else _default_handler


def log(
    msg: str,
    fields: Optional[Mapping[str, Any]] = None,
    err: Optional[BaseException] = None,
) -> None:
    """Pass a message, its fields and an optional error to the current handler."""
    with _lock:
        handler = _handler
    handler(msg, fields, err)