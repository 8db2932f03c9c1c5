"""
Monitoring API Schemas.

Pydantic models for the monitoring module:
- Request parameters (time range, pagination)
- Kibana Monitoring API payloads, decoded with per-field defaults
- Normalized DTOs returned to the frontend
- Upstream call statistics
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _isoformat(value: datetime) -> str:
    """ISO-8601 instant in UTC with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Request Models
# =============================================================================

class TimeRange(BaseModel):
    """Query window sent to Kibana as ``timeRange``."""

    model_config = ConfigDict(frozen=True)

    min: datetime
    max: datetime

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        if self.min > self.max:
            raise ValueError("timeRange.min must not be after timeRange.max")
        return self

    @classmethod
    def last(cls, minutes: int, now: Optional[datetime] = None) -> "TimeRange":
        """Window ending now (or at ``now``) and spanning ``minutes``."""
        end = now or datetime.now(timezone.utc)
        return cls(min=end - timedelta(minutes=minutes), max=end)

    def to_upstream(self) -> Dict[str, str]:
        return {"min": _isoformat(self.min), "max": _isoformat(self.max)}


class Pagination(BaseModel):
    """Page request sent to Kibana as ``pagination``."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(default=0, ge=0)
    size: int = Field(default=20, ge=1)

    def to_upstream(self) -> Dict[str, int]:
        return {"index": self.index, "size": self.size}


# =============================================================================
# Kibana Payload Models
# =============================================================================

class UpstreamModel(BaseModel):
    """
    Base for Kibana payloads.

    Unknown fields are ignored and explicit ``null`` values are dropped
    before validation, so every field falls back to its declared default.
    Fields serialize under their Kibana names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ClusterStatus(UpstreamModel):
    """Cluster-level status block (``clusterStatus``)."""

    status: str = ""  # green, yellow, red
    indices_count: int = 0
    document_count: int = 0
    data_size: int = 0
    nodes_count: int = 0
    up_time: int = 0
    version: List[str] = Field(default_factory=list)
    mem_used: int = 0
    mem_max: int = 0
    unassigned_shards: int = 0
    total_shards: int = 0


class MetricInfo(UpstreamModel):
    """Metric metadata attached to series and node summaries."""

    app: str = ""
    field: str = ""
    metric_agg: str = ""
    label: str = ""
    title: str = ""
    description: str = ""
    units: str = ""
    format: str = ""
    has_calculation: bool = False
    is_derivative: bool = False


class MetricSummary(UpstreamModel):
    """
    Min/max/last summary of a node metric.

    Values stay ``None`` when the node does not report them; the overview
    aggregation only counts nodes that do.
    """

    min_val: Optional[float] = None
    max_val: Optional[float] = None
    last_val: Optional[float] = None
    slope: int = 0  # 1 up, -1 down, 0 flat


class NodeMetric(UpstreamModel):
    metric: MetricInfo = Field(default_factory=MetricInfo)
    summary: MetricSummary = Field(default_factory=MetricSummary)


class SeriesTimeRange(UpstreamModel):
    min: int = 0
    max: int = 0


class TimeSeriesData(UpstreamModel):
    """One raw series; ``data`` holds ``[timestamp_ms, value]`` pairs."""

    bucket_size: str = Field(default="", alias="bucket_size")
    time_range: SeriesTimeRange = Field(default_factory=SeriesTimeRange)
    metric: MetricInfo = Field(default_factory=MetricInfo)
    data: List[Any] = Field(default_factory=list)


def _drop_null_series(value: Any) -> Any:
    """Skip ``null`` metric groups and ``null`` entries inside a group."""
    if not isinstance(value, dict):
        return value
    return {
        name: [series for series in group if series is not None] if isinstance(group, list) else group
        for name, group in value.items()
        if group is not None
    }


MetricGroups = Annotated[Dict[str, List[TimeSeriesData]], BeforeValidator(_drop_null_series)]


class ClusterLogs(UpstreamModel):
    enabled: bool = False
    logs: List[Any] = Field(default_factory=list)
    reason: Dict[str, Any] = Field(default_factory=dict)
    limit: int = 0


class ClusterOverview(UpstreamModel):
    """Response of ``/clusters/{clusterId}/elasticsearch``."""

    cluster_status: ClusterStatus = Field(default_factory=ClusterStatus)
    metrics: MetricGroups = Field(default_factory=dict)
    logs: ClusterLogs = Field(default_factory=ClusterLogs)
    shard_activity: List[Any] = Field(default_factory=list)


class NodeInfo(UpstreamModel):
    """Entry of the node listing."""

    name: str = ""
    uuid: str = ""
    is_online: bool = False
    shard_count: int = 0
    transport_address: str = Field(default="", alias="transport_address")
    type: str = ""  # master, node
    node_type_label: str = ""
    node_type_class: str = ""
    roles: List[str] = Field(default_factory=list)
    resolver: str = ""

    node_cgroup_throttled: NodeMetric = Field(default_factory=NodeMetric, alias="node_cgroup_throttled")
    node_cpu_utilization: NodeMetric = Field(default_factory=NodeMetric, alias="node_cpu_utilization")
    node_load_average: NodeMetric = Field(default_factory=NodeMetric, alias="node_load_average")
    node_jvm_mem_percent: NodeMetric = Field(default_factory=NodeMetric, alias="node_jvm_mem_percent")
    node_free_space: NodeMetric = Field(default_factory=NodeMetric, alias="node_free_space")


class NodesResponse(UpstreamModel):
    """Response of ``/clusters/{clusterId}/elasticsearch/nodes``."""

    cluster_status: ClusterStatus = Field(default_factory=ClusterStatus)
    nodes: List[NodeInfo] = Field(default_factory=list)
    total_node_count: int = 0


class NodeSummary(UpstreamModel):
    resolver: str = ""
    node_ids: List[str] = Field(default_factory=list, alias="node_ids")
    transport_address: str = Field(default="", alias="transport_address")
    name: str = ""
    type: str = ""
    node_type_label: str = ""
    node_type_class: str = ""
    total_shards: int = 0
    index_count: int = 0
    documents: int = 0
    data_size: int = 0
    free_space: int = 0
    total_space: int = 0
    used_heap: int = 0
    status: str = ""
    is_online: bool = False


class NodeDetail(UpstreamModel):
    """Response of ``/clusters/{clusterId}/elasticsearch/nodes/{nodeId}``."""

    node_summary: NodeSummary = Field(default_factory=NodeSummary)
    metrics: MetricGroups = Field(default_factory=dict)


class IndexInfo(UpstreamModel):
    """Entry of the index listing."""

    name: str = ""
    status: str = ""
    doc_count: int = Field(default=0, alias="doc_count")
    data_size: int = Field(default=0, alias="data_size")
    index_rate: float = Field(default=0.0, alias="index_rate")
    search_rate: float = Field(default=0.0, alias="search_rate")
    unassigned_shards: int = Field(default=0, alias="unassigned_shards")
    status_sort: int = Field(default=0, alias="status_sort")


class IndicesResponse(UpstreamModel):
    """Response of ``/clusters/{clusterId}/elasticsearch/indices``."""

    cluster_status: ClusterStatus = Field(default_factory=ClusterStatus)
    indices: List[IndexInfo] = Field(default_factory=list)


class DataSize(UpstreamModel):
    primaries: int = 0
    total: int = 0


class IndexSummary(UpstreamModel):
    name: str = ""
    status: str = ""
    primaries: int = 0
    replicas: int = 0
    documents: int = 0
    data_size: DataSize = Field(default_factory=DataSize)
    unassigned_shards: int = 0
    total_shards: int = 0


class ShardInfo(UpstreamModel):
    index: str = ""
    shard: int = 0
    node: str = ""
    primary: bool = False
    relocating_node: str = ""
    state: str = ""


class IndexDetail(UpstreamModel):
    """Response of ``/clusters/{clusterId}/elasticsearch/indices/{indexName}``."""

    index_summary: IndexSummary = Field(default_factory=IndexSummary)
    metrics: MetricGroups = Field(default_factory=dict)
    shards: List[ShardInfo] = Field(default_factory=list)


# =============================================================================
# Normalized Models
# =============================================================================

class CamelModel(BaseModel):
    """Frontend-facing DTO base; serializes with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TimeSeriesPoint(CamelModel):
    """Single flattened data point."""

    timestamp: int  # milliseconds since epoch
    value: float


TimeSeriesMap = Dict[str, List[TimeSeriesPoint]]


class ClusterInfo(CamelModel):
    name: str = ""
    uuid: str = ""
    status: str = ""
    version: str = "unknown"
    up_time: int = 0


class NodesInfo(CamelModel):
    total: int = 0
    successful: int = 0
    data: int = 0
    master: int = 0


class IndicesInfo(CamelModel):
    total: int = 0
    docs: int = 0
    store_size_bytes: int = 0


class ShardsInfo(CamelModel):
    total: int = 0
    primaries: int = 0  # estimated
    unassigned: int = 0
    relocating: int = 0
    initializing: int = 0


class JvmInfo(CamelModel):
    heap_used_percent: int = 0
    heap_used_bytes: int = 0
    heap_max_bytes: int = 0


class OsInfo(CamelModel):
    cpu_percent: int = 0
    mem_used_percent: int = 0


class FsInfo(CamelModel):
    total_bytes: int = 0  # estimated
    available_bytes: int = 0
    used_percent: int = 0


class MonitoringOverview(CamelModel):
    """Cluster status and key metrics merged for the overview dashboard."""

    cluster: ClusterInfo = Field(default_factory=ClusterInfo)
    nodes: NodesInfo = Field(default_factory=NodesInfo)
    indices: IndicesInfo = Field(default_factory=IndicesInfo)
    shards: ShardsInfo = Field(default_factory=ShardsInfo)
    jvm: JvmInfo = Field(default_factory=JvmInfo)
    os: OsInfo = Field(default_factory=OsInfo)
    fs: FsInfo = Field(default_factory=FsInfo)
    time_series: TimeSeriesMap = Field(default_factory=dict)


# =============================================================================
# Call Statistics Models
# =============================================================================

class EndpointStatsSnapshot(CamelModel):
    """Point-in-time view of one endpoint's call statistics."""

    path: str
    call_count: int = 0
    avg_time_ms: int = 0
    min_time_ms: int = 0
    max_time_ms: int = 0
    last_call_time_ms: int = 0
    total_time_ms: int = 0


class CallStatsResponse(CamelModel):
    """Upstream call statistics keyed by normalized path."""

    api_stats: Dict[str, EndpointStatsSnapshot] = Field(default_factory=dict)
    timestamp: int
