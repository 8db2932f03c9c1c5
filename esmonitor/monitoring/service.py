"""
Monitoring Service.

This module provides the main service layer for the monitoring module:
- Kibana endpoint templates and request bodies
- Decoding of Kibana payloads into typed schemas
- Metric key remapping and time series flattening
- Parallel aggregation for the monitoring overview
"""

import asyncio
from typing import List, Optional, Type, TypeVar
from urllib.parse import quote

import structlog
from pydantic import ValidationError

from esmonitor.core.config import MonitorSettings, get_settings
from esmonitor.monitoring.clients.kibana import KibanaClient
from esmonitor.monitoring.exceptions import CompositeFetchFailure, UpstreamDecodeError
from esmonitor.monitoring.normalization.base import (
    INDEX_METRIC_KEY_MAPPING,
    NODE_METRIC_KEY_MAPPING,
    normalize_metric_groups,
)
from esmonitor.monitoring.normalization.overview import build_monitoring_overview
from esmonitor.monitoring.schemas import (
    ClusterOverview,
    ClusterStatus,
    EndpointStatsSnapshot,
    IndexDetail,
    IndicesResponse,
    MonitoringOverview,
    NodeDetail,
    NodesResponse,
    Pagination,
    TimeRange,
    TimeSeriesMap,
    UpstreamModel,
)
from esmonitor.monitoring.stats import CallStatsRegistry

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=UpstreamModel)

CLUSTER_PATH = "/api/monitoring/v1/clusters/{cluster_id}/elasticsearch"


class MonitoringService:
    """
    Main service for monitoring operations.

    Translates caller-level queries into Kibana Monitoring API calls and
    normalizes the results. Stateless apart from the shared client.
    """

    def __init__(self, client: KibanaClient, config: Optional[MonitorSettings] = None):
        """
        Initialize monitoring service.

        Args:
            client: Shared Kibana client
            config: Aggregation settings (window, heuristics)
        """
        self.client = client
        self.config = config or MonitorSettings()

    def _cluster_path(self, suffix: str = "") -> str:
        return CLUSTER_PATH.format(cluster_id=self.client.cluster_id) + suffix

    def _resolve_time_range(self, time_range: Optional[TimeRange]) -> TimeRange:
        """Default to the last ``default_window_minutes`` minutes."""
        return time_range or TimeRange.last(self.config.default_window_minutes)

    async def _fetch(self, path: str, body: dict, model: Type[T]) -> T:
        payload = await self.client.post(path, body)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error("kibana_payload_invalid", path=path, model=model.__name__, errors=e.error_count())
            raise UpstreamDecodeError(path, str(e)) from e

    # ==========================================================================
    # Cluster
    # ==========================================================================

    async def get_cluster_overview(self, time_range: Optional[TimeRange] = None) -> ClusterOverview:
        """
        Get cluster overview data.

        Args:
            time_range: Query window (default: last hour)

        Returns:
            ClusterOverview with status, metric series and log metadata
        """
        time_range = self._resolve_time_range(time_range)
        body = {"timeRange": time_range.to_upstream()}
        return await self._fetch(self._cluster_path(), body, ClusterOverview)

    async def get_cluster_status(self, time_range: Optional[TimeRange] = None) -> ClusterStatus:
        """Cluster status block, taken from the node listing."""
        nodes = await self.get_nodes(time_range)
        return nodes.cluster_status

    async def get_monitoring_overview(self, time_range: Optional[TimeRange] = None) -> MonitoringOverview:
        """
        Get the normalized monitoring overview.

        The cluster overview and the node listing are fetched concurrently.
        If either call fails the whole operation fails; no partial overview
        is returned.

        Args:
            time_range: Query window (default: last hour)

        Returns:
            MonitoringOverview

        Raises:
            CompositeFetchFailure: wrapping the first failed sub-call
        """
        time_range = self._resolve_time_range(time_range)

        cluster_task = asyncio.create_task(self.get_cluster_overview(time_range))
        nodes_task = asyncio.create_task(self.get_nodes(time_range))

        try:
            cluster_overview, nodes_response = await asyncio.gather(cluster_task, nodes_task)
        except Exception as e:
            for task in (cluster_task, nodes_task):
                task.cancel()
            logger.error("monitoring_overview_fetch_failed", error=str(e), error_type=type(e).__name__)
            raise CompositeFetchFailure("monitoring_overview", e) from e

        return build_monitoring_overview(
            cluster_overview,
            nodes_response,
            cluster_id=self.client.cluster_id,
            display_name=self.config.cluster_display_name,
            primaries_divisor=self.config.primaries_divisor,
            fs_free_ratio=self.config.fs_free_ratio,
        )

    # ==========================================================================
    # Nodes
    # ==========================================================================

    async def get_nodes(
        self,
        time_range: Optional[TimeRange] = None,
        pagination: Optional[Pagination] = None,
    ) -> NodesResponse:
        """
        Get node listing.

        Args:
            time_range: Query window (default: last hour)
            pagination: Page request (default: index 0, size 20)

        Returns:
            NodesResponse
        """
        time_range = self._resolve_time_range(time_range)
        pagination = pagination or Pagination()
        body = {
            "timeRange": time_range.to_upstream(),
            "pagination": pagination.to_upstream(),
        }
        return await self._fetch(self._cluster_path("/nodes"), body, NodesResponse)

    async def get_node_detail(self, node_id: str, time_range: Optional[TimeRange] = None) -> NodeDetail:
        """Get node summary and raw metric series."""
        time_range = self._resolve_time_range(time_range)
        body = {
            "timeRange": time_range.to_upstream(),
            "is_advanced": False,
        }
        path = self._cluster_path(f"/nodes/{quote(node_id, safe='')}")
        return await self._fetch(path, body, NodeDetail)

    async def get_node_time_series(self, node_id: str, time_range: Optional[TimeRange] = None) -> TimeSeriesMap:
        """Node metric series, flattened and keyed by normalized metric name."""
        detail = await self.get_node_detail(node_id, time_range)
        return normalize_metric_groups(detail.metrics, NODE_METRIC_KEY_MAPPING)

    # ==========================================================================
    # Indices
    # ==========================================================================

    async def get_indices(
        self,
        time_range: Optional[TimeRange] = None,
        pagination: Optional[Pagination] = None,
        query_text: Optional[str] = None,
        show_system_indices: bool = False,
    ) -> IndicesResponse:
        """
        Get index listing.

        Args:
            time_range: Query window (default: last hour)
            pagination: Page request (default: index 0, size 20)
            query_text: Free-text filter on index names
            show_system_indices: Include dot-prefixed system indices

        Returns:
            IndicesResponse
        """
        time_range = self._resolve_time_range(time_range)
        pagination = pagination or Pagination()
        body = {
            "timeRange": time_range.to_upstream(),
            "pagination": pagination.to_upstream(),
            "queryText": query_text or "",
        }
        flag = "true" if show_system_indices else "false"
        path = self._cluster_path(f"/indices?show_system_indices={flag}")
        return await self._fetch(path, body, IndicesResponse)

    async def get_index_detail(self, index_name: str, time_range: Optional[TimeRange] = None) -> IndexDetail:
        """Get index summary, shards and raw metric series."""
        time_range = self._resolve_time_range(time_range)
        body = {
            "timeRange": time_range.to_upstream(),
            "is_advanced": False,
        }
        path = self._cluster_path(f"/indices/{quote(index_name, safe='')}")
        return await self._fetch(path, body, IndexDetail)

    async def get_index_time_series(self, index_name: str, time_range: Optional[TimeRange] = None) -> TimeSeriesMap:
        """Index metric series, flattened and keyed by normalized metric name."""
        detail = await self.get_index_detail(index_name, time_range)
        return normalize_metric_groups(detail.metrics, INDEX_METRIC_KEY_MAPPING)

    # ==========================================================================
    # Statistics
    # ==========================================================================

    def get_call_statistics_snapshot(self) -> List[EndpointStatsSnapshot]:
        """Upstream call statistics, slowest average first."""
        return self.client.stats.snapshot()

    def log_call_statistics(self) -> None:
        self.client.stats.log_report()

    async def close(self) -> None:
        """Close the Kibana client."""
        await self.client.close()


# Global service instance
_monitoring_service: Optional[MonitoringService] = None


def get_monitoring_service() -> MonitoringService:
    """Get or create global monitoring service instance."""
    global _monitoring_service
    if _monitoring_service is None:
        settings = get_settings()
        client = KibanaClient(settings.kibana, CallStatsRegistry())
        _monitoring_service = MonitoringService(client, settings.monitor)
    return _monitoring_service


async def close_monitoring_service() -> None:
    """Close and drop the global monitoring service instance."""
    global _monitoring_service
    if _monitoring_service is not None:
        await _monitoring_service.close()
        _monitoring_service = None
