"""
Health check endpoints for liveness and readiness probes.
"""
import time
from datetime import datetime, timezone
from typing import Dict, Any
import psutil
from .logging import get_logger
from .stores.base import EventStore

logger = get_logger()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthChecker:
    """
    Health checker for GridBridge service.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can the service handle traffic?)
    """

    def __init__(
        self,
        service_name: str = "gridbridge",
        version: str = "0.1.0",
        store: EventStore | None = None,
        publisher_configured: bool = False,
    ):
        self.service_name = service_name
        self.version = version
        self.store = store
        self.publisher_configured = publisher_configured

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info and timestamp
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _utc_timestamp(),
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness check - comprehensive health check.

        Checks:
        - Received-event store connectivity
        - Event Grid publisher configuration (informational)
        - Disk space availability
        - Memory availability

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "store": await self._check_store(),
            "publisher": self._check_publisher(),
            "disk_space": self._check_disk_space(),
            "memory": self._check_memory(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": _utc_timestamp(),
            "checks": checks,
        }

    async def _check_store(self) -> Dict[str, Any]:
        """
        Check the received-event store.

        Returns:
            dict: Store health check result
        """
        if self.store is None:
            return {
                "status": "skipped",
                "message": "No event store configured",
            }

        start = time.time()
        healthy = await self.store.health_check()
        latency_ms = round((time.time() - start) * 1000, 2)
        if not healthy:
            logger.warning("store_health_check_failed", store=type(self.store).__name__)
            return {
                "status": "error",
                "store": type(self.store).__name__,
                "error": "Event store is not reachable",
            }
        return {
            "status": "ok",
            "store": type(self.store).__name__,
            "latency_ms": latency_ms,
        }

    def _check_publisher(self) -> Dict[str, Any]:
        if not self.publisher_configured:
            return {
                "status": "skipped",
                "message": "Event Grid publishing not configured",
            }
        return {"status": "ok"}

    def _check_disk_space(self, threshold_gb: float = 1.0) -> Dict[str, Any]:
        """
        Check available disk space.

        Args:
            threshold_gb: Minimum available disk space in GB (default: 1.0)

        Returns:
            dict: Disk space health check result
        """
        try:
            disk = psutil.disk_usage("/")
        except OSError as e:
            logger.warning("disk_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }

        available_gb = disk.free / (1024**3)
        if available_gb < threshold_gb:
            status = "error"
        elif available_gb < threshold_gb * 2:
            status = "warning"
        else:
            status = "ok"

        return {
            "status": status,
            "available_gb": round(available_gb, 2),
            "total_gb": round(disk.total / (1024**3), 2),
            "used_percent": disk.percent,
        }

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        """
        Check available memory.

        Args:
            threshold_mb: Minimum available memory in MB (default: 50.0)

        Returns:
            dict: Memory health check result
        """
        memory = psutil.virtual_memory()
        available_mb = memory.available / (1024**2)

        if available_mb < threshold_mb:
            status = "error"
        elif available_mb < threshold_mb * 2:
            status = "warning"
        else:
            status = "ok"

        return {
            "status": status,
            "available_mb": round(available_mb, 2),
            "total_mb": round(memory.total / (1024**2), 2),
            "used_percent": memory.percent,
        }
