"""Service health aggregation over HTTP health endpoints."""

from __future__ import annotations

import logging
import time
from typing import Dict, Mapping, Optional

import httpx

from devbootstrap.config import DEFAULT_HEALTH_ENDPOINTS
from devbootstrap.models import AggregateHealth, ServiceHealthRecord
from devbootstrap.timeouts import HTTP_HEALTH_CHECK_TIMEOUT_S

__all__ = ["HealthAggregator"]

logger = logging.getLogger(__name__)


class HealthAggregator:
    """
    Probes each backing service once and combines the results.

    No retries happen here; a caller that wants to wait for services should
    wrap check_all() in poll_until().

    Args:
        endpoints: Service name to health URL
        timeout: Per-request timeout in seconds
        client: httpx client (injectable for tests)
    """

    def __init__(
        self,
        endpoints: Optional[Mapping[str, str]] = None,
        timeout: float = HTTP_HEALTH_CHECK_TIMEOUT_S,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.endpoints: Dict[str, str] = dict(DEFAULT_HEALTH_ENDPOINTS if endpoints is None else endpoints)
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def check_http(self, name: str, url: str) -> ServiceHealthRecord:
        """Check one HTTP endpoint; 200 is the only healthy answer."""
        start_time = time.monotonic()
        try:
            response = self._get_client().get(url, timeout=self.timeout)
        except httpx.TimeoutException:
            return ServiceHealthRecord(name=name, healthy=False, probe_url=url, error="Timeout")
        except httpx.ConnectError as e:
            logger.debug("%s unreachable: %s", name, e)
            return ServiceHealthRecord(name=name, healthy=False, probe_url=url, error=str(e) or "Connection refused")
        except httpx.RequestError as e:
            return ServiceHealthRecord(name=name, healthy=False, probe_url=url, error=str(e) or type(e).__name__)

        response_time_ms = int((time.monotonic() - start_time) * 1000)
        healthy = response.status_code == 200
        return ServiceHealthRecord(
            name=name,
            healthy=healthy,
            probe_url=url,
            status_code=response.status_code,
            error=None if healthy else f"HTTP {response.status_code}",
            response_time_ms=response_time_ms,
        )

    def check_all(self) -> AggregateHealth:
        """Probe every configured service and return a fresh verdict."""
        records = {name: self.check_http(name, url) for name, url in self.endpoints.items()}
        health = AggregateHealth(services=records)
        if health.all_healthy:
            logger.info("All %d services healthy", len(records))
        else:
            logger.warning("Unhealthy services: %s", ", ".join(health.unhealthy_services))
        return health

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
