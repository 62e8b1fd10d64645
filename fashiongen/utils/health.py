"""Health reporting for the generation server."""

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List

import psutil

from fashiongen.core.base_backend import BaseBackend
from fashiongen.utils.result_store import ResultStore

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    status: HealthStatus
    message: str
    details: Dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


def _worse(current: HealthStatus, candidate: HealthStatus) -> HealthStatus:
    order = [HealthStatus.HEALTHY, HealthStatus.DEGRADED, HealthStatus.UNHEALTHY]
    return max(current, candidate, key=order.index)


class HealthChecker:
    """Reports whether the server can accept generation requests.

    Checks the storage the server writes to (content directory, metadata log
    and free disk space), memory pressure and whether an API key is
    configured. The remote model itself is only probed on request through
    ``check_backend``, since that costs a network round trip.
    """

    def __init__(self, store: ResultStore, api_key_configured: bool = True):
        """Initialize the health checker.

        Args:
            store: Result store whose directories are checked
            api_key_configured: Whether a remote-model API key is set
        """
        self.store = store
        self.api_key_configured = api_key_configured
        self.start_time = time.time()
        self.request_count = 0
        self.error_count = 0

        logger.info("HealthChecker initialized")

    def check_health(self) -> HealthCheckResult:
        """Perform the local health checks.

        Returns:
            HealthCheckResult with status and details
        """
        status = HealthStatus.HEALTHY
        issues: List[str] = []

        if not self.api_key_configured:
            status = HealthStatus.UNHEALTHY
            issues.append("Remote model API key is not configured")

        content_dir = self.store.content_dir
        content_writable = content_dir.is_dir() and os.access(content_dir, os.W_OK)
        if not content_writable:
            status = HealthStatus.UNHEALTHY
            issues.append(f"Content directory {content_dir} is not writable")

        log_readable = self.store.metadata_file.is_file() and os.access(self.store.metadata_file, os.R_OK)
        if not log_readable:
            status = _worse(status, HealthStatus.DEGRADED)
            issues.append(f"Metadata log {self.store.metadata_file} is not readable")

        details: Dict = {
            "uptime_seconds": round(time.time() - self.start_time, 1),
            "uptime_human": self._format_uptime(time.time() - self.start_time),
            "content_dir_writable": content_writable,
            "metadata_log_readable": log_readable,
            "generation_records": len(self.store.load_records()) if log_readable else 0,
            "requests_total": self.request_count,
            "requests_failed": self.error_count,
        }

        try:
            disk = psutil.disk_usage(str(content_dir if content_dir.exists() else content_dir.parent))
            memory = psutil.virtual_memory()
        except (OSError, psutil.Error) as e:
            logger.error(f"Resource check failed: {e}")
            status = _worse(status, HealthStatus.DEGRADED)
            issues.append(f"Resource check error: {e}")
        else:
            details.update({
                "disk_usage_percent": round(disk.percent, 2),
                "disk_free_gb": round(disk.free / (1024 * 1024 * 1024), 2),
                "memory_usage_percent": round(memory.percent, 2),
            })
            # Warning at 85%, critical at 95%
            if disk.percent > 95:
                status = HealthStatus.UNHEALTHY
                issues.append(f"Critical disk usage: {disk.percent:.1f}%")
            elif disk.percent > 85:
                status = _worse(status, HealthStatus.DEGRADED)
                issues.append(f"High disk usage: {disk.percent:.1f}%")
            if memory.percent > 95:
                status = _worse(status, HealthStatus.DEGRADED)
                issues.append(f"High memory usage: {memory.percent:.1f}%")

        if status == HealthStatus.HEALTHY:
            message = "All systems operational"
        elif status == HealthStatus.DEGRADED:
            message = f"System degraded: {', '.join(issues)}"
        else:
            message = f"System unhealthy: {', '.join(issues)}"

        return HealthCheckResult(status=status, message=message, details=details)

    def check_backend(self, backend: BaseBackend) -> HealthCheckResult:
        """Probe the remote model.

        Args:
            backend: Backend instance to check

        Returns:
            HealthCheckResult for the backend
        """
        if backend.health_check():
            return HealthCheckResult(
                status=HealthStatus.HEALTHY,
                message=f"Backend {backend.name} is healthy",
                details={"backend": backend.name}
            )
        return HealthCheckResult(
            status=HealthStatus.UNHEALTHY,
            message=f"Backend {backend.name} health check failed",
            details={"backend": backend.name}
        )

    def record_request(self, success: bool = True) -> None:
        """Record a generation request for the counters in the report."""
        self.request_count += 1
        if not success:
            self.error_count += 1

    def _format_uptime(self, seconds: float) -> str:
        days = int(seconds // 86400)
        hours = int((seconds % 86400) // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)
