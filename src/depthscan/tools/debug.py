"""Opt-in timing of the capture and reconstruction paths.

Set ``DEPTHSCAN_DEBUG=1`` to log per-frame timings at DEBUG level.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

DEBUG_ENV_VAR = "DEPTHSCAN_DEBUG"
_TRUTHY = {"1", "true", "yes", "on"}

logger = logging.getLogger(__name__)


def debug_enabled() -> bool:
    return os.getenv(DEBUG_ENV_VAR, "").strip().lower() in _TRUTHY


@contextmanager
def time_block(label: str, *, log: logging.Logger | None = None) -> Iterator[None]:
    """Log how long the ``with`` body took; a no-op unless debugging is on."""
    if not debug_enabled():
        yield
        return

    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        (log or logger).debug("%s took %.3f ms", label, elapsed_ms)
