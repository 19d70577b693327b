"""Observability: structured tool logs (trace_id, tool, latency_ms) and call counters."""

from __future__ import annotations

import logging
import threading
from typing import Any

_LOGGER = logging.getLogger("sponsorcast.mcp")
_METRICS_LOCK = threading.Lock()

# tool_calls[name] = count, errors[name] = count
METRICS: dict[str, dict[str, int]] = {"tool_calls": {}, "errors": {}}


def get_logger() -> logging.Logger:
    return _LOGGER


def log_tool_invocation(
    tool: str,
    trace_id: str | None,
    latency_ms: float,
    error: str | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Emit a structured log line and bump the per-tool counters."""
    payload: dict[str, Any] = {
        "tool": tool,
        "trace_id": trace_id,
        "latency_ms": round(latency_ms, 2),
    }
    if error:
        payload["error"] = error
    if extra:
        payload.update(extra)
    if error:
        _LOGGER.warning("tool_invocation", extra=payload)
    else:
        _LOGGER.info("tool_invocation", extra=payload)
    with _METRICS_LOCK:
        METRICS["tool_calls"][tool] = METRICS["tool_calls"].get(tool, 0) + 1
        if error:
            METRICS["errors"][tool] = METRICS["errors"].get(tool, 0) + 1


def metrics_snapshot() -> dict[str, dict[str, int]]:
    with _METRICS_LOCK:
        return {k: dict(v) for k, v in METRICS.items()}


def reset_metrics() -> None:
    with _METRICS_LOCK:
        for counters in METRICS.values():
            counters.clear()
