"""
Upstream call statistics.

Per-endpoint latency bookkeeping for the Kibana client. Concrete request
paths are folded into stable keys (``normalize_path``) so parameterized
endpoints aggregate into a single entry.
"""

import re
import threading
from typing import Dict, List, Optional

import structlog

from esmonitor.monitoring.schemas import EndpointStatsSnapshot

logger = structlog.get_logger(__name__)

_NODE_ID_RE = re.compile(r"/nodes/[^/?]+")
_INDEX_NAME_RE = re.compile(r"/indices/[^/?]+")


def _format_line(entry: EndpointStatsSnapshot) -> str:
    return (
        f"API[{entry.path}]: calls={entry.call_count}, avg={entry.avg_time_ms}ms, "
        f"min={entry.min_time_ms}ms, max={entry.max_time_ms}ms, last={entry.last_call_time_ms}ms"
    )


def normalize_path(path: str) -> str:
    """
    Map a concrete request path to its statistics key.

    Identifiers are replaced first, then the query string is stripped, e.g.
    ``/nodes/abc123/timeseries`` -> ``/nodes/{nodeId}/timeseries`` and
    ``/indices?show_system_indices=true`` -> ``/indices``.
    """
    simplified = _NODE_ID_RE.sub("/nodes/{nodeId}", path)
    simplified = _INDEX_NAME_RE.sub("/indices/{indexName}", simplified)
    query_index = simplified.find("?")
    if query_index >= 0:
        simplified = simplified[:query_index]
    return simplified


class EndpointStats:
    """
    Running latency statistics for one endpoint.

    ``call_count`` and ``total_time_ms`` are updated under a per-entry lock
    and never lose an update. ``min_time_ms``/``max_time_ms`` are updated
    outside the lock: two racing writers may leave a slightly stale extreme.
    Readers never take the lock.
    """

    def __init__(self, path: str):
        self.path = path
        self.call_count = 0
        self.total_time_ms = 0
        self.min_time_ms = float("inf")
        self.max_time_ms = 0
        self.last_call_time_ms = 0
        self._lock = threading.Lock()

    def record(self, elapsed_ms: int) -> None:
        with self._lock:
            self.call_count += 1
            self.total_time_ms += elapsed_ms
        self.last_call_time_ms = elapsed_ms

        # Best-effort extremes; small race-induced inaccuracy is accepted
        if elapsed_ms < self.min_time_ms:
            self.min_time_ms = elapsed_ms
        if elapsed_ms > self.max_time_ms:
            self.max_time_ms = elapsed_ms

    @property
    def avg_time_ms(self) -> int:
        count = self.call_count
        return self.total_time_ms // count if count > 0 else 0

    def snapshot(self) -> EndpointStatsSnapshot:
        min_time = self.min_time_ms
        return EndpointStatsSnapshot(
            path=self.path,
            call_count=self.call_count,
            avg_time_ms=self.avg_time_ms,
            min_time_ms=0 if min_time == float("inf") else int(min_time),
            max_time_ms=self.max_time_ms,
            last_call_time_ms=self.last_call_time_ms,
            total_time_ms=self.total_time_ms,
        )

    def __str__(self) -> str:
        return _format_line(self.snapshot())


class CallStatsRegistry:
    """
    Process-wide table of endpoint statistics.

    Constructed once per process and handed to the Kibana client. Entries
    are created on first observation and live until ``reset()``.
    """

    def __init__(self) -> None:
        self._stats: Dict[str, EndpointStats] = {}

    def record(self, key: str, elapsed_ms: int) -> None:
        """Record one call observation for ``key``."""
        stats = self._stats.get(key)
        if stats is None:
            # setdefault is atomic: concurrent first observations share one entry
            stats = self._stats.setdefault(key, EndpointStats(key))
        stats.record(elapsed_ms)

    def get(self, key: str) -> Optional[EndpointStats]:
        return self._stats.get(key)

    def snapshot(self) -> List[EndpointStatsSnapshot]:
        """Point-in-time summaries, slowest average first."""
        entries = [stats.snapshot() for stats in list(self._stats.values())]
        return sorted(entries, key=lambda s: s.avg_time_ms, reverse=True)

    def report(self) -> str:
        lines = ["", "========== Kibana API Statistics =========="]
        for entry in self.snapshot():
            lines.append(_format_line(entry))
        lines.append("============================================")
        return "\n".join(lines) + "\n"

    def log_report(self) -> None:
        logger.info("kibana_api_statistics", report=self.report(), endpoints=len(self._stats))

    def reset(self) -> None:
        self._stats.clear()

    def __len__(self) -> int:
        return len(self._stats)
