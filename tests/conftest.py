from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Callable, Dict, List, Union

import httpx
import pytest
import pytest_asyncio

from esmonitor.core.config import KibanaSettings, MonitorSettings
from esmonitor.monitoring.clients.kibana import KibanaClient
from esmonitor.monitoring.service import MonitoringService
from esmonitor.monitoring.stats import CallStatsRegistry

BASE_URL = "http://kibana.test"
CLUSTER_ID = "test-cluster"
CLUSTER_PATH = f"/api/monitoring/v1/clusters/{CLUSTER_ID}/elasticsearch"
NODES_PATH = f"{CLUSTER_PATH}/nodes"
INDICES_PATH = f"{CLUSTER_PATH}/indices"


def _series(data: List[Any]) -> Dict[str, Any]:
    return {
        "bucket_size": "10s",
        "timeRange": {"min": 1000, "max": 3000},
        "metric": {"app": "elasticsearch", "label": "Rate", "units": "/s"},
        "data": data,
    }


CLUSTER_OVERVIEW_PAYLOAD: Dict[str, Any] = {
    "clusterStatus": {
        "status": "green",
        "indicesCount": 12,
        "documentCount": 34567,
        "dataSize": 1048576,
        "nodesCount": 3,
        "upTime": 3600000,
        "version": ["8.11.0"],
        "memUsed": 512,
        "memMax": 1024,
        "unassignedShards": 1,
        "totalShards": 24,
    },
    "metrics": {
        "cluster_search_request_rate": [_series([[1000, 1.5], [2000, 2.5]])],
        "cluster_index_request_rate": [_series([[1000, 10], [2000, None]]), _series([[1000, 99]])],
        "cluster_query_latency": [],
        "kibana_cluster_requests": [_series([[1000, 4]])],
    },
    "logs": {"enabled": False, "logs": [], "reason": {}, "limit": 10},
    "shardActivity": [],
}


def _node(name: str, roles: List[str], cpu: Any, free: Any) -> Dict[str, Any]:
    return {
        "name": name,
        "uuid": f"{name}-uuid",
        "isOnline": True,
        "shardCount": 8,
        "transport_address": f"10.0.0.{len(name)}:9300",
        "type": "master" if "master" in roles else "node",
        "roles": roles,
        "node_cpu_utilization": {"summary": {"minVal": 1, "maxVal": 50, "lastVal": cpu, "slope": 1}},
        "node_free_space": {"summary": {"lastVal": free}},
        "node_jvm_mem_percent": {"summary": {"lastVal": 40}},
    }


NODES_PAYLOAD: Dict[str, Any] = {
    "clusterStatus": CLUSTER_OVERVIEW_PAYLOAD["clusterStatus"],
    "nodes": [
        _node("es-1", ["master", "data", "ingest"], 10, 400),
        _node("es-2", ["data"], 20, 800),
        _node("es-3", ["ml"], None, None),
    ],
    "totalNodeCount": 3,
}

NODE_DETAIL_PAYLOAD: Dict[str, Any] = {
    "nodeSummary": {"name": "es-1", "node_ids": ["abc123"], "transport_address": "10.0.0.1:9300", "isOnline": True},
    "metrics": {
        "node_cpu_utilization": [_series([[1000, 12.5], [2000, 13.0]])],
        "node_jvm_mem": [_series([[1000, 40]])],
        "custom_metric": [_series([[1000, 1]])],
        "node_latency": [],
    },
}

INDICES_PAYLOAD: Dict[str, Any] = {
    "clusterStatus": CLUSTER_OVERVIEW_PAYLOAD["clusterStatus"],
    "indices": [
        {
            "name": "logs-2024.01",
            "status": "green",
            "doc_count": 1200,
            "data_size": 2048,
            "index_rate": 3.5,
            "search_rate": 0.25,
            "unassigned_shards": 0,
            "status_sort": 1,
        },
    ],
}

INDEX_DETAIL_PAYLOAD: Dict[str, Any] = {
    "indexSummary": {
        "name": "logs-2024.01",
        "status": "green",
        "primaries": 1,
        "replicas": 1,
        "documents": 1200,
        "dataSize": {"primaries": 1024, "total": 2048},
        "totalShards": 2,
    },
    "metrics": {
        "index_search_request_rate": [_series([[1000, 0.5]])],
        "index_request_rate": [_series([[1000, 3.0]])],
    },
    "shards": [{"index": "logs-2024.01", "shard": 0, "node": "abc123", "primary": True, "state": "STARTED"}],
}


Responder = Union[Dict[str, Any], httpx.Response, Exception, Callable[[httpx.Request], Any]]


class KibanaStub:
    """Routes requests by URL path to canned responses and records them."""

    def __init__(self) -> None:
        self.routes: Dict[str, Responder] = {}
        self.requests: List[httpx.Request] = []

    def add(self, path: str, responder: Responder) -> None:
        self.routes[path] = responder

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get(request.url.path)
        if responder is None:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        if isinstance(responder, Exception):
            raise responder
        if isinstance(responder, httpx.Response):
            return responder
        if isinstance(responder, dict):
            return httpx.Response(200, json=responder)
        result = responder(request)
        if hasattr(result, "__await__"):
            result = await result
        return result


@pytest.fixture
def kibana_settings() -> KibanaSettings:
    return KibanaSettings(
        base_url=BASE_URL,
        cluster_id=CLUSTER_ID,
        username="elastic",
        password="changeme",
        version="8.11.0",
        build_number="68312",
        slow_call_threshold_ms=2000,
    )


@pytest.fixture
def monitor_settings() -> MonitorSettings:
    return MonitorSettings(
        default_window_minutes=60,
        cluster_display_name="elasticsearch",
        primaries_divisor=2,
        fs_free_ratio=0.4,
    )


@pytest.fixture
def registry() -> CallStatsRegistry:
    return CallStatsRegistry()


@pytest.fixture
def kibana() -> KibanaStub:
    stub = KibanaStub()
    stub.add(CLUSTER_PATH, CLUSTER_OVERVIEW_PAYLOAD)
    stub.add(NODES_PATH, NODES_PAYLOAD)
    stub.add(f"{NODES_PATH}/abc123", NODE_DETAIL_PAYLOAD)
    stub.add(INDICES_PATH, INDICES_PAYLOAD)
    stub.add(f"{INDICES_PATH}/logs-2024.01", INDEX_DETAIL_PAYLOAD)
    return stub


@pytest.fixture
def kibana_client(kibana_settings: KibanaSettings, registry: CallStatsRegistry, kibana: KibanaStub) -> KibanaClient:
    return KibanaClient(kibana_settings, registry, transport=httpx.MockTransport(kibana.handler))


@pytest.fixture
def service(kibana_client: KibanaClient, monitor_settings: MonitorSettings) -> MonitoringService:
    return MonitoringService(kibana_client, monitor_settings)


@pytest_asyncio.fixture
async def async_service(service: MonitoringService) -> AsyncIterator[MonitoringService]:
    try:
        yield service
    finally:
        await service.close()
