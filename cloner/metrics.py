"""
In-memory metrics for the cloner service.

Counters are dotted names: requests.<stage>, errors.<stage> and
errors.provider.<name>. Provider round-trips are sampled per provider, and
gauges track live runs and pollers. The snapshot served by /metrics also
folds the counters into a per-stage view.

Nothing here survives a restart; project and scene rows are the durable
record of what happened.
"""

import time
import threading
from typing import Dict, List
from collections import defaultdict, deque

STAGES = ("analysis", "music", "image", "video", "pipeline")

MAX_SAMPLES = 100
MAX_ERRORS = 50

_lock = threading.Lock()
_counters: Dict[str, int] = defaultdict(int)
_gauges: Dict[str, float] = defaultdict(float)
_latency: Dict[str, deque] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES))
_errors: deque = deque(maxlen=MAX_ERRORS)


def inc_counter(name: str, amount: int = 1):
    with _lock:
        _counters[name] += amount


def get_counter(name: str) -> int:
    with _lock:
        return _counters.get(name, 0)


def record_latency(key: str, duration_ms: float):
    """One provider round-trip, in milliseconds."""
    with _lock:
        _latency[key].append(duration_ms)


def set_gauge(name: str, value: float):
    with _lock:
        _gauges[name] = value


def adjust_gauge(name: str, delta: float):
    """Move a level gauge (active_runs, active_pollers); never below zero."""
    with _lock:
        _gauges[name] = max(0.0, _gauges[name] + delta)


def record_error(stage: str, message: str, project_id: str = ""):
    """Count a stage failure and keep it for the recent-errors list."""
    with _lock:
        _counters[f"errors.{stage}"] += 1
        _errors.append({
            "timestamp": time.time(),
            "stage": stage,
            "project_id": project_id,
            "message": message[:300],
        })


def _percentiles(samples: List[float]) -> dict:
    ordered = sorted(samples)
    n = len(ordered)
    return {
        "count": n,
        "avg": sum(ordered) / n,
        "p50": ordered[n // 2],
        "p95": ordered[min(n - 1, int(n * 0.95))],
        "max": ordered[-1],
    }


def get_snapshot() -> dict:
    now = time.time()
    with _lock:
        stages = {
            stage: {
                "requests": _counters.get(f"requests.{stage}", 0),
                "errors": _counters.get(f"errors.{stage}", 0),
            }
            for stage in STAGES
        }
        return {
            "timestamp": now,
            "uptime_seconds": now - _gauges.get("start_time", now),
            "stages": stages,
            "counters": dict(_counters),
            "gauges": dict(_gauges),
            "latency": {key: _percentiles(list(s)) for key, s in _latency.items() if s},
            "recent_errors": list(_errors)[-10:],
        }


def reset():
    with _lock:
        _counters.clear()
        _gauges.clear()
        _latency.clear()
        _errors.clear()
