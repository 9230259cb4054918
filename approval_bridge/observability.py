"""
Latency tracing for the decision pipeline.

Every inbound event and every backend call produces one structured line:

    [TRACE] forward_decision duration_ms=43.21 status=ok action=approve

so a slow gateway or backend can be told apart from a slow classifier.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("approval_bridge.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure a block and log its duration and outcome.

    The span logs even when the block raises, and never suppresses the
    exception.
    """
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except BaseException:
        outcome = "error"
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f status=%s %s", name, duration_ms, outcome, meta)
