"""Retrieval traces for evaluation runs.

When RLM_BENCH_TRACE is set, every pipeline run appends one JSON line to
RLM_BENCH_TRACE_FILE describing what it resolved. Tracing is best effort and
never affects the context block.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from common.env import env
from common.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RetrievalTrace:
    """Mutable record filled in while the pipeline runs."""

    prompt: str
    attempted: list[str] = field(default_factory=list)
    mode: str | None = None
    signals: dict[str, list[str]] | None = None
    candidates: list[str] = field(default_factory=list)
    follow_ups: list[dict[str, str | None]] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    summarized: bool = False
    failures: list[str] = field(default_factory=list)

    def to_dict(self, duration_ms: float) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "prompt_id": env.trace_prompt_id(),
            "run_id": env.trace_run_id(),
            "prompt": self.prompt,
            "attempted": self.attempted,
            "mode": self.mode,
            "signals": self.signals,
            "candidates": self.candidates,
            "follow_ups": self.follow_ups,
            "added": self.added,
            "summarized": self.summarized,
            "failures": self.failures,
            "duration_ms": round(duration_ms, 1),
        }


def write_trace(trace: RetrievalTrace, duration_ms: float) -> None:
    """Append the trace if tracing is enabled."""
    path = env.trace_file()
    if not env.trace_enabled() or path is None:
        return

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(trace.to_dict(duration_ms), ensure_ascii=False) + "\n")
    except OSError as e:
        logger.debug(f"Could not write retrieval trace to {path}: {e}")
