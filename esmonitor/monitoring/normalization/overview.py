"""
Overview Normalization.

Merges the cluster overview and node listing payloads into the
MonitoringOverview summary. Two values are heuristics rather than
measurements, both configurable through MonitorSettings:

- primary shards are estimated as ``total_shards // primaries_divisor``
- filesystem total is estimated per node as ``free_space / fs_free_ratio``
"""

from typing import Iterable, List

from esmonitor.monitoring.normalization.base import CLUSTER_METRIC_KEY_MAPPING, normalize_metric_groups
from esmonitor.monitoring.schemas import (
    ClusterInfo,
    ClusterOverview,
    ClusterStatus,
    FsInfo,
    IndicesInfo,
    JvmInfo,
    MonitoringOverview,
    NodeInfo,
    NodesInfo,
    NodesResponse,
    OsInfo,
    ShardsInfo,
)

DEFAULT_PRIMARIES_DIVISOR = 2
DEFAULT_FS_FREE_RATIO = 0.4


def heap_used_percent(mem_used: int, mem_max: int) -> int:
    if mem_max > 0:
        return round(mem_used * 100 / mem_max)
    return 0


def count_role(nodes: Iterable[NodeInfo], role: str) -> int:
    """Number of nodes whose role list contains ``role``."""
    return sum(1 for node in nodes if role in node.roles)


def average_cpu_percent(nodes: Iterable[NodeInfo]) -> int:
    """Mean of the last CPU value over reporting nodes, truncated; 0 if none report."""
    values = [
        node.node_cpu_utilization.summary.last_val
        for node in nodes
        if node.node_cpu_utilization.summary.last_val is not None
    ]
    if not values:
        return 0
    return int(sum(values) / len(values))


def filesystem_summary(nodes: Iterable[NodeInfo], fs_free_ratio: float = DEFAULT_FS_FREE_RATIO) -> FsInfo:
    """Sum reported free space; total is estimated from free space per node."""
    available = 0
    total = 0
    for node in nodes:
        free_space = node.node_free_space.summary.last_val
        if free_space is None:
            continue
        available += int(free_space)
        total += int(free_space / fs_free_ratio)

    used_percent = round((total - available) * 100 / total) if total > 0 else 0
    return FsInfo(total_bytes=total, available_bytes=available, used_percent=used_percent)


def estimate_primaries(total_shards: int, divisor: int = DEFAULT_PRIMARIES_DIVISOR) -> int:
    return total_shards // divisor


def build_cluster_info(status: ClusterStatus, cluster_id: str, display_name: str) -> ClusterInfo:
    return ClusterInfo(
        name=display_name,
        uuid=cluster_id,
        status=status.status,
        version=status.version[0] if status.version else "unknown",
        up_time=status.up_time,
    )


def build_monitoring_overview(
    cluster_overview: ClusterOverview,
    nodes_response: NodesResponse,
    cluster_id: str,
    display_name: str = "elasticsearch",
    primaries_divisor: int = DEFAULT_PRIMARIES_DIVISOR,
    fs_free_ratio: float = DEFAULT_FS_FREE_RATIO,
) -> MonitoringOverview:
    """
    Compose the overview from a cluster overview and a node listing.

    Args:
        cluster_overview: Decoded cluster overview payload
        nodes_response: Decoded node listing payload
        cluster_id: Cluster UUID reported as ``cluster.uuid``
        display_name: Cluster name, Kibana does not return it
        primaries_divisor: Primary shard estimate divisor
        fs_free_ratio: Assumed free fraction of each node's filesystem

    Returns:
        Fully populated MonitoringOverview
    """
    status = cluster_overview.cluster_status
    nodes: List[NodeInfo] = nodes_response.nodes

    jvm = JvmInfo(
        heap_used_percent=heap_used_percent(status.mem_used, status.mem_max),
        heap_used_bytes=status.mem_used,
        heap_max_bytes=status.mem_max,
    )

    return MonitoringOverview(
        cluster=build_cluster_info(status, cluster_id, display_name),
        nodes=NodesInfo(
            total=status.nodes_count,
            successful=status.nodes_count,
            data=count_role(nodes, "data"),
            master=count_role(nodes, "master"),
        ),
        indices=IndicesInfo(
            total=status.indices_count,
            docs=status.document_count,
            store_size_bytes=status.data_size,
        ),
        shards=ShardsInfo(
            total=status.total_shards,
            primaries=estimate_primaries(status.total_shards, primaries_divisor),
            unassigned=status.unassigned_shards,
            relocating=0,
            initializing=0,
        ),
        jvm=jvm,
        # JVM heap stands in for OS memory usage
        os=OsInfo(
            cpu_percent=average_cpu_percent(nodes),
            mem_used_percent=jvm.heap_used_percent,
        ),
        fs=filesystem_summary(nodes, fs_free_ratio),
        time_series=normalize_metric_groups(
            cluster_overview.metrics,
            CLUSTER_METRIC_KEY_MAPPING,
            only_mapped=True,
        ),
    )

