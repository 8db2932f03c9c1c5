"""
Kibana Client for ES Monitoring.

This module provides a Kibana Monitoring API client with:
- Static Basic Auth (no login handshake, no token refresh)
- Connection pooling and per-phase timeout management
- Per-endpoint call statistics and slow call warnings
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

import httpx
import structlog

from esmonitor.core.config import KibanaSettings
from esmonitor.monitoring.exceptions import (
    ERROR_BODY_PREVIEW_CHARS,
    UpstreamDecodeError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from esmonitor.monitoring.stats import CallStatsRegistry, normalize_path

logger = structlog.get_logger(__name__)

LOG_BODY_PREVIEW_CHARS = 500

KIBANA_CONTEXT = '{"type":"application","name":"monitoring","url":"/app/monitoring"}'


def _preview(text: str, limit: int = LOG_BODY_PREVIEW_CHARS) -> str:
    """Truncate a body for logging, marking the cut."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class KibanaClient:
    """
    Async Kibana Monitoring API client.

    One instance is shared by the whole process. Every call records its
    elapsed time into the injected statistics registry, on success, failure
    and cancellation alike.
    """

    def __init__(
        self,
        config: KibanaSettings,
        stats: CallStatsRegistry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Kibana client.

        Args:
            config: Kibana connection settings
            stats: Registry receiving one observation per call
            transport: Optional transport override (used by tests)
        """
        self.config = config
        self.stats = stats
        self._transport = transport

        # HTTP client will be created on first use
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def cluster_id(self) -> str:
        return self.config.cluster_id

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "kbn-version": self.config.version,
            "kbn-build-number": self.config.build_number,
            "x-elastic-internal-origin": "Kibana",
            "x-kbn-context": quote_plus(KIBANA_CONTEXT),
        }

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=self._build_headers(),
                auth=httpx.BasicAuth(
                    username=self.config.username,
                    password=self.config.password,
                ),
                timeout=httpx.Timeout(
                    self.config.read_timeout,
                    connect=self.config.connect_timeout,
                    read=self.config.read_timeout,
                    write=self.config.write_timeout,
                    pool=self.config.pool_timeout,
                ),
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_keepalive_connections,
                    keepalive_expiry=self.config.keepalive_expiry,
                ),
                transport=self._transport,
            )
            logger.info(
                "kibana_client_initialized",
                base_url=self.config.base_url,
                max_keepalive_connections=self.config.max_keepalive_connections,
                keepalive_expiry=self.config.keepalive_expiry,
            )

        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "KibanaClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _record_stats(self, stats_path: str, elapsed_ms: int) -> None:
        self.stats.record(stats_path, elapsed_ms)

        if elapsed_ms > self.config.slow_call_threshold_ms:
            logger.warning(
                "slow_upstream_call",
                path=stats_path,
                elapsed_ms=elapsed_ms,
                threshold_ms=self.config.slow_call_threshold_ms,
            )

    async def post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON body to the Kibana Monitoring API.

        Args:
            path: API path relative to the base URL, may carry a query string
            body: JSON-serializable request body

        Returns:
            Decoded JSON object

        Raises:
            UpstreamTransportError: network failure or timeout
            UpstreamStatusError: non-2xx response
            UpstreamDecodeError: 2xx response that is not a JSON object
        """
        json_body = json.dumps(body)
        stats_path = normalize_path(path)
        client = self._get_client()

        logger.debug("kibana_request", path=path, body=_preview(json_body))

        start = time.perf_counter()
        try:
            response = await client.post(path, content=json_body.encode("utf-8"))
        except httpx.HTTPError as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self._record_stats(stats_path, elapsed_ms)
            logger.error(
                "kibana_request_error",
                path=path,
                error=str(e) or type(e).__name__,
                elapsed_ms=elapsed_ms,
            )
            raise UpstreamTransportError(path, str(e) or type(e).__name__) from e
        except asyncio.CancelledError:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self._record_stats(stats_path, elapsed_ms)
            logger.info("kibana_request_cancelled", path=path, elapsed_ms=elapsed_ms)
            raise

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self._record_stats(stats_path, elapsed_ms)

        response_body = response.text

        if not response.is_success:
            logger.error(
                "kibana_http_error",
                status_code=response.status_code,
                path=path,
                body=response_body[:ERROR_BODY_PREVIEW_CHARS],
                elapsed_ms=elapsed_ms,
            )
            raise UpstreamStatusError(path, response.status_code, response_body)

        logger.debug("kibana_response", path=path, elapsed_ms=elapsed_ms, body=_preview(response_body))

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamDecodeError(path, str(e)) from e

        if not isinstance(payload, dict):
            raise UpstreamDecodeError(path, f"expected a JSON object, got {type(payload).__name__}")

        return payload
