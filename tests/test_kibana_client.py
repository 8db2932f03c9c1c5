from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from esmonitor.core.config import KibanaSettings
from esmonitor.monitoring.clients import kibana as kibana_module
from esmonitor.monitoring.clients.kibana import KibanaClient
from esmonitor.monitoring.exceptions import (
    UpstreamDecodeError,
    UpstreamError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from esmonitor.monitoring.stats import CallStatsRegistry

from tests.conftest import INDICES_PATH, NODES_PATH, KibanaStub


class RecordingLogger:
    def __init__(self) -> None:
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    def _log(self, level: str, event: str, **kw: Any) -> None:
        self.events.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._log("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log("error", event, **kw)


@pytest.mark.asyncio
async def test_post_sends_static_headers_and_basic_auth(kibana_client: KibanaClient, kibana: KibanaStub) -> None:
    await kibana_client.post(NODES_PATH, {"timeRange": {"min": "a", "max": "b"}})
    await kibana_client.close()

    request = kibana.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"http://kibana.test{NODES_PATH}"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["kbn-version"] == "8.11.0"
    assert request.headers["kbn-build-number"] == "68312"
    assert request.headers["x-elastic-internal-origin"] == "Kibana"
    assert request.headers["x-kbn-context"] == (
        "%7B%22type%22%3A%22application%22%2C%22name%22%3A%22monitoring%22"
        "%2C%22url%22%3A%22%2Fapp%2Fmonitoring%22%7D"
    )
    assert request.headers["authorization"] == "Basic ZWxhc3RpYzpjaGFuZ2VtZQ=="


@pytest.mark.asyncio
async def test_post_serializes_body_as_json(kibana_client: KibanaClient, kibana: KibanaStub) -> None:
    body = {"timeRange": {"min": "2024-01-01T00:00:00Z", "max": "2024-01-01T01:00:00Z"}, "is_advanced": False}
    payload = await kibana_client.post(NODES_PATH, body)
    await kibana_client.close()

    assert json.loads(kibana.requests[0].content) == body
    assert payload["totalNodeCount"] == 3


@pytest.mark.asyncio
async def test_post_keeps_query_string(kibana_client: KibanaClient, kibana: KibanaStub) -> None:
    await kibana_client.post(f"{INDICES_PATH}?show_system_indices=true", {})
    await kibana_client.close()

    assert kibana.requests[0].url.params["show_system_indices"] == "true"


@pytest.mark.asyncio
async def test_success_records_one_observation_under_normalized_key(
    kibana_client: KibanaClient, kibana: KibanaStub, registry: CallStatsRegistry
) -> None:
    await kibana_client.post(f"{NODES_PATH}/abc123", {})
    await kibana_client.post(f"{INDICES_PATH}?show_system_indices=false", {})
    await kibana_client.close()

    nodes_entry = registry.get(f"{NODES_PATH}/{{nodeId}}")
    indices_entry = registry.get(INDICES_PATH)
    assert nodes_entry is not None and nodes_entry.call_count == 1
    assert indices_entry is not None and indices_entry.call_count == 1


@pytest.mark.asyncio
async def test_status_error_truncates_body_and_records_stats(
    kibana_client: KibanaClient, kibana: KibanaStub, registry: CallStatsRegistry
) -> None:
    kibana.add(NODES_PATH, httpx.Response(503, text="x" * 500))

    with pytest.raises(UpstreamStatusError) as exc_info:
        await kibana_client.post(NODES_PATH, {})
    await kibana_client.close()

    exc = exc_info.value
    assert exc.status_code == 503
    assert exc.path == NODES_PATH
    assert len(exc.body) == 200
    assert str(exc) == "Request failed: 503 - " + "x" * 200
    assert registry.get(NODES_PATH).call_count == 1


@pytest.mark.asyncio
async def test_transport_error_records_stats(
    kibana_client: KibanaClient, kibana: KibanaStub, registry: CallStatsRegistry
) -> None:
    kibana.add(NODES_PATH, httpx.ConnectError("connection refused"))

    with pytest.raises(UpstreamTransportError) as exc_info:
        await kibana_client.post(NODES_PATH, {})
    await kibana_client.close()

    assert "connection refused" in str(exc_info.value)
    assert isinstance(exc_info.value, UpstreamError)
    assert registry.get(NODES_PATH).call_count == 1


@pytest.mark.asyncio
async def test_read_timeout_is_a_transport_error(kibana_client: KibanaClient, kibana: KibanaStub) -> None:
    kibana.add(NODES_PATH, httpx.ReadTimeout("timed out"))

    with pytest.raises(UpstreamTransportError):
        await kibana_client.post(NODES_PATH, {})
    await kibana_client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=[1, 2, 3]),
    ],
)
async def test_non_object_payload_is_a_decode_error(
    kibana_client: KibanaClient, kibana: KibanaStub, registry: CallStatsRegistry, response: httpx.Response
) -> None:
    kibana.add(NODES_PATH, response)

    with pytest.raises(UpstreamDecodeError):
        await kibana_client.post(NODES_PATH, {})
    await kibana_client.close()

    assert registry.get(NODES_PATH).call_count == 1


@pytest.mark.asyncio
async def test_slow_call_logs_warning(
    kibana_settings: KibanaSettings,
    registry: CallStatsRegistry,
    kibana: KibanaStub,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    recorder = RecordingLogger()
    monkeypatch.setattr(kibana_module, "logger", recorder)

    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return httpx.Response(200, json={})

    kibana.add(NODES_PATH, slow)
    config = kibana_settings.model_copy(update={"slow_call_threshold_ms": 10})
    client = KibanaClient(config, registry, transport=httpx.MockTransport(kibana.handler))

    await client.post(NODES_PATH, {})
    await client.close()

    warnings = [e for e in recorder.events if e[0] == "warning"]
    assert len(warnings) == 1
    assert warnings[0][1] == "slow_upstream_call"
    assert warnings[0][2]["path"] == NODES_PATH
    assert warnings[0][2]["elapsed_ms"] > 10


@pytest.mark.asyncio
async def test_fast_call_does_not_warn(
    kibana_client: KibanaClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    recorder = RecordingLogger()
    monkeypatch.setattr(kibana_module, "logger", recorder)

    await kibana_client.post(NODES_PATH, {})
    await kibana_client.close()

    assert not [e for e in recorder.events if e[0] == "warning"]


@pytest.mark.asyncio
async def test_client_is_reused_and_closed(kibana_client: KibanaClient) -> None:
    async with kibana_client as client:
        await client.post(NODES_PATH, {})
        first = client._get_client()
        await client.post(NODES_PATH, {})
        assert client._get_client() is first

    assert first.is_closed
