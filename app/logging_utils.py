"""
Structured logging helpers for aggregation runs.

Every line is one JSON object with an ``event`` key so run logs can be
filtered without parsing free text.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


@contextmanager
def timed_event(
    logger: logging.Logger,
    event: str,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Log ``event`` with its wall-clock duration when the block exits.

    Keys added to the yielded dict are merged into the log line. A block that
    raises is logged at WARNING with ``status="failed"``.
    """

    extra: dict[str, Any] = {}
    started = time.perf_counter()
    status = "ok"
    try:
        yield extra
    except Exception:
        status = "failed"
        raise
    finally:
        log_event(
            logger,
            logging.INFO if status == "ok" else logging.WARNING,
            event,
            status=status,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            **fields,
            **extra,
        )
