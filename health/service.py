"""
Health check service for the location service.

Liveness and basic health only prove the process answers; readiness probes
the location store under a timeout and reports how long the probe took.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Any

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DependencyHealth:
    """Result of probing one dependency; ``error`` is set only when unhealthy."""
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class HealthStatus:
    """Readiness verdict: "healthy" only if every dependency is."""
    status: str
    timestamp: str
    dependencies: list[DependencyHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


class HealthCheckService:
    """
    Checks readiness and liveness of the service.

    Attributes:
        store: The location store to probe (anything with ``async health_check()``)
        check_timeout: Timeout in seconds for the store probe
    """

    STORE_DEPENDENCY = "location_store"

    def __init__(self, store: Any, check_timeout: float = 5.0):
        self.store = store
        self.check_timeout = check_timeout

    async def check_readiness(self) -> HealthStatus:
        """
        Probe the store; the service is ready only if the store answers.

        Returns:
            HealthStatus with the store's result and response time
        """
        store_health = await self._check_store()
        return HealthStatus(
            status="healthy" if store_health.healthy else "unhealthy",
            timestamp=_utc_timestamp(),
            dependencies=[store_health],
        )

    async def check_liveness(self) -> dict[str, Any]:
        """The process is up; the store is not consulted."""
        return {
            "status": "alive",
            "timestamp": _utc_timestamp()
        }

    async def check_health(self) -> dict[str, Any]:
        """The service is accepting requests."""
        return {
            "status": "ok",
            "timestamp": _utc_timestamp()
        }

    async def _check_store(self) -> DependencyHealth:
        start_time = time.perf_counter()
        error: Optional[str] = None

        try:
            answered = await asyncio.wait_for(self.store.health_check(), timeout=self.check_timeout)
            if not answered:
                error = "Location store health check returned False"
        except asyncio.TimeoutError:
            error = f"Location store health check timed out after {self.check_timeout} seconds"
        except Exception as e:
            error = f"Location store health check failed: {e}"

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if error:
            logger.warning(error, extra={"extra_data": {"response_time_ms": round(elapsed_ms, 2)}})
        else:
            logger.debug(f"Location store answered in {elapsed_ms:.2f}ms")

        return DependencyHealth(
            name=self.STORE_DEPENDENCY,
            healthy=error is None,
            response_time_ms=elapsed_ms,
            error=error,
        )
