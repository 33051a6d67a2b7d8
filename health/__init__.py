"""
Health check module for the location service.

Readiness checks the location store under a timeout and reports its
response time.
"""

from health.service import (
    HealthCheckService,
    HealthStatus,
    DependencyHealth,
)

__all__ = [
    "HealthCheckService",
    "HealthStatus",
    "DependencyHealth",
]
