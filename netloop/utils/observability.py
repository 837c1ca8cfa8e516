from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

# Correlates every log line of one detection run.
detection_run_var: ContextVar[Optional[str]] = ContextVar("detection_run", default=None)


@contextmanager
def detection_run(run_id: Optional[str] = None) -> Iterator[str]:
    """Bind a run id for the duration of one detection run; nested runs keep their own."""
    rid = run_id or uuid.uuid4().hex[:8]
    token = detection_run_var.set(rid)
    try:
        yield rid
    finally:
        detection_run_var.reset(token)


@contextmanager
def log_duration(logger: Any, operation: str, **fields: object) -> Iterator[None]:
    """Log how long an operation took, at debug level, as key=value pairs."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        rid = detection_run_var.get()
        if rid and "run" not in fields:
            fields = {"run": rid, **fields}
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        if extras:
            logger.debug("op=%s duration_ms=%.2f %s", operation, elapsed_ms, extras)
        else:
            logger.debug("op=%s duration_ms=%.2f", operation, elapsed_ms)
