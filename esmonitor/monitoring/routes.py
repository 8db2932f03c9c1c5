"""
Monitoring API Routes.

This module provides the FastAPI routes for the monitoring module.
Errors raised by the service propagate to the application's exception
handlers, which render them in the standard error envelope.
"""

import time

from fastapi import APIRouter, Depends, Query

from esmonitor.monitoring.schemas import (
    CallStatsResponse,
    ClusterOverview,
    ClusterStatus,
    IndexDetail,
    IndicesResponse,
    MonitoringOverview,
    NodeDetail,
    NodesResponse,
    Pagination,
    TimeRange,
    TimeSeriesMap,
)
from esmonitor.monitoring.service import MonitoringService, get_monitoring_service

router = APIRouter(prefix="/monitor", tags=["monitor"])


# =============================================================================
# Dependencies
# =============================================================================

async def get_service() -> MonitoringService:
    """Get monitoring service instance."""
    return get_monitoring_service()


def get_time_range(
    minutes: int = Query(60, ge=1, description="Time range in minutes, ending now"),
) -> TimeRange:
    return TimeRange.last(minutes)


def get_pagination(
    page: int = Query(0, ge=0, description="Page index (0-based)"),
    page_size: int = Query(20, ge=1, alias="pageSize", description="Page size"),
) -> Pagination:
    return Pagination(index=page, size=page_size)


# =============================================================================
# Cluster Routes
# =============================================================================

@router.get("/cluster/overview", response_model=ClusterOverview)
async def get_cluster_overview(
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """
    Get the cluster overview in Kibana's format.

    Includes cluster status, cluster-level metric series and log metadata.
    """
    return await service.get_cluster_overview(time_range)


@router.get("/overview", response_model=MonitoringOverview)
async def get_monitoring_overview(
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """
    Get the normalized monitoring overview for the dashboard.

    Cluster overview and node listing are fetched in parallel; a failure of
    either fails the request.
    """
    return await service.get_monitoring_overview(time_range)


@router.get("/cluster/status", response_model=ClusterStatus)
async def get_cluster_status(
    service: MonitoringService = Depends(get_service),
):
    """Get the cluster status block for the last hour."""
    return await service.get_cluster_status()


# =============================================================================
# Node Routes
# =============================================================================

@router.get("/nodes", response_model=NodesResponse)
async def get_nodes(
    time_range: TimeRange = Depends(get_time_range),
    pagination: Pagination = Depends(get_pagination),
    service: MonitoringService = Depends(get_service),
):
    """Get the paginated node listing."""
    return await service.get_nodes(time_range, pagination)


@router.get("/nodes/{node_id}", response_model=NodeDetail)
async def get_node_detail(
    node_id: str,
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """Get node summary and raw metric series."""
    return await service.get_node_detail(node_id, time_range)


@router.get("/nodes/{node_id}/timeseries", response_model=TimeSeriesMap)
async def get_node_time_series(
    node_id: str,
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """Get flattened node metric series keyed by normalized metric name."""
    return await service.get_node_time_series(node_id, time_range)


# =============================================================================
# Index Routes
# =============================================================================

@router.get("/indices", response_model=IndicesResponse)
async def get_indices(
    time_range: TimeRange = Depends(get_time_range),
    pagination: Pagination = Depends(get_pagination),
    query_text: str = Query("", alias="queryText", description="Filter on index names"),
    show_system_indices: bool = Query(False, alias="showSystemIndices"),
    service: MonitoringService = Depends(get_service),
):
    """Get the paginated index listing."""
    return await service.get_indices(
        time_range,
        pagination,
        query_text=query_text,
        show_system_indices=show_system_indices,
    )


@router.get("/indices/{index_name}", response_model=IndexDetail)
async def get_index_detail(
    index_name: str,
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """Get index summary, shard allocation and raw metric series."""
    return await service.get_index_detail(index_name, time_range)


@router.get("/indices/{index_name}/timeseries", response_model=TimeSeriesMap)
async def get_index_time_series(
    index_name: str,
    time_range: TimeRange = Depends(get_time_range),
    service: MonitoringService = Depends(get_service),
):
    """Get flattened index metric series keyed by normalized metric name."""
    return await service.get_index_time_series(index_name, time_range)


# =============================================================================
# Statistics Routes
# =============================================================================

@router.get("/stats", response_model=CallStatsResponse)
async def get_call_statistics(
    service: MonitoringService = Depends(get_service),
):
    """
    Get Kibana API call statistics.

    Also writes the statistics report to the log.
    """
    snapshot = service.get_call_statistics_snapshot()
    service.log_call_statistics()

    return CallStatsResponse(
        api_stats={entry.path: entry for entry in snapshot},
        timestamp=int(time.time() * 1000),
    )
