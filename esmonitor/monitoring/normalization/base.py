"""
Time Series Normalization.

Stateless converters from Kibana's nested series payloads to the flat,
frontend-facing shape.

Raw series (per metric name, Kibana may return several sub-series):
    {"node_cpu_utilization": [{"bucket_size": "10s", "data": [[ts, v], ...]}, ...]}

Normalized series (first sub-series only, key renamed):
    {"cpu_percent": [{"timestamp": ts, "value": v}, ...]}
"""

import math
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from esmonitor.monitoring.schemas import MetricGroups, TimeSeriesData, TimeSeriesMap, TimeSeriesPoint


# =============================================================================
# Metric Key Mappings
# =============================================================================

NODE_METRIC_KEY_MAPPING: Dict[str, str] = {
    "node_cpu_utilization": "cpu_percent",
    "node_cpu_metric": "cpu_percent",
    "node_jvm_mem": "heap_used_percent",
    "node_load_average": "load_average",
    "node_latency": "latency",
    "node_index_mem": "index_memory",
    "node_total_io": "io_operations",
    "node_segment_count": "segment_count",
}

INDEX_METRIC_KEY_MAPPING: Dict[str, str] = {
    "index_search_request_rate": "search_rate",
    "index_request_rate": "indexing_rate",
    "index_latency": "query_latency",
    "index_document_count": "doc_count",
    "index_segment_count": "segment_count",
    "index_mem": "index_memory",
}

# Cluster overview keeps only these series
CLUSTER_METRIC_KEY_MAPPING: Dict[str, str] = {
    "cluster_search_request_rate": "search_rate",
    "cluster_index_request_rate": "indexing_rate",
    "cluster_query_latency": "query_latency",
    "cluster_index_latency": "index_latency",
}


def remap_metric_key(key: str, mapping: Mapping[str, str]) -> str:
    """Rename a Kibana metric key; unmapped keys pass through unchanged."""
    return mapping.get(key, key)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def flatten_time_series(series: Optional[TimeSeriesData]) -> List[TimeSeriesPoint]:
    """
    Convert ``[[timestamp, value], ...]`` pairs to points.

    Entries that are not a pair or whose timestamp or value is not a finite
    number are skipped; order is preserved.
    """
    if series is None:
        return []

    points = []
    for entry in series.data:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        timestamp, value = entry[0], entry[1]
        if _is_number(timestamp) and _is_number(value):
            points.append(TimeSeriesPoint(timestamp=int(timestamp), value=float(value)))

    return points


def flatten_raw_series(data: List[Any]) -> List[TimeSeriesPoint]:
    """Flatten a bare list of ``[timestamp, value]`` pairs."""
    return flatten_time_series(TimeSeriesData(data=data))


def first_series(group: Optional[List[TimeSeriesData]]) -> Optional[TimeSeriesData]:
    """Kibana may return several sub-series per metric; only the first is used."""
    if not group:
        return None
    return group[0]


def normalize_metric_groups(
    metrics: MetricGroups,
    mapping: Mapping[str, str],
    only_mapped: bool = False,
) -> TimeSeriesMap:
    """
    Flatten each metric group and rename its key.

    Args:
        metrics: Raw metric groups keyed by Kibana metric name
        mapping: Kibana key -> normalized key
        only_mapped: Drop groups whose key has no mapping entry

    Returns:
        Normalized series keyed by output name; empty groups are omitted
    """
    result: TimeSeriesMap = {}

    for metric_name, group in metrics.items():
        if only_mapped and metric_name not in mapping:
            continue
        series = first_series(group)
        if series is None:
            continue
        result[remap_metric_key(metric_name, mapping)] = flatten_time_series(series)

    return result
