"""Normalization of Kibana monitoring payloads."""

from esmonitor.monitoring.normalization.base import (
    CLUSTER_METRIC_KEY_MAPPING,
    INDEX_METRIC_KEY_MAPPING,
    NODE_METRIC_KEY_MAPPING,
    first_series,
    flatten_raw_series,
    flatten_time_series,
    normalize_metric_groups,
    remap_metric_key,
)
from esmonitor.monitoring.normalization.overview import (
    average_cpu_percent,
    build_cluster_info,
    build_monitoring_overview,
    count_role,
    estimate_primaries,
    filesystem_summary,
    heap_used_percent,
)

__all__ = [
    "CLUSTER_METRIC_KEY_MAPPING",
    "INDEX_METRIC_KEY_MAPPING",
    "NODE_METRIC_KEY_MAPPING",
    "average_cpu_percent",
    "build_cluster_info",
    "build_monitoring_overview",
    "count_role",
    "estimate_primaries",
    "filesystem_summary",
    "first_series",
    "flatten_raw_series",
    "flatten_time_series",
    "heap_used_percent",
    "normalize_metric_groups",
    "remap_metric_key",
]
