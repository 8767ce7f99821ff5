"""
Structured logging helpers for clustering runs.

Events are single JSON lines so iteration traces can be grepped or parsed
back out of a plain log file.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import numpy as np


def _jsonable(value: Any) -> Any:
    """JSON fallback for numpy values; anything else is stringified."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    return str(value)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Nothing is serialized when *level* is disabled for *logger*; the engine
    emits an event per iteration.
    """

    if not logger.isEnabledFor(level):
        return
    line = json.dumps({"event": event, **fields}, default=_jsonable, sort_keys=True)
    logger.log(level, line)
