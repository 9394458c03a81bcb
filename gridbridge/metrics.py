"""
Prometheus metrics for the GridBridge service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
import psutil
import structlog
import os

log = structlog.get_logger()


class Metrics:
    """
    Centralized metrics for GridBridge service.

    Each instance owns its registry so several apps (and tests) can coexist
    in one process.
    """

    def __init__(self, service_name: str = "gridbridge", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            ["service"],
            registry=self.registry,
        )
        self.http_requests_active.labels(service=service_name).set(0)

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Event Grid traffic
        self.events_received_total = Counter(
            "gridbridge_events_received_total",
            "Total events received on the webhook",
            ["schema", "event_type"],
            registry=self.registry,
        )

        self.events_published_total = Counter(
            "gridbridge_events_published_total",
            "Total events published to Event Grid topics",
            ["schema"],
            registry=self.registry,
        )

        self.publish_failures_total = Counter(
            "gridbridge_publish_failures_total",
            "Total failed publish calls",
            ["schema", "error_type"],
            registry=self.registry,
        )

        self.publish_duration = Histogram(
            "gridbridge_publish_duration_seconds",
            "Duration of publish calls to Event Grid in seconds",
            ["schema"],
            registry=self.registry,
        )

        # System Metrics
        self._setup_process_metrics()

    def _setup_process_metrics(self):
        """Set up process-level metrics using psutil."""
        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )

        self.process_open_fds = Gauge(
            "process_open_fds",
            "Number of open file descriptors",
            ["service"],
            registry=self.registry,
        )

        self.update_system_metrics()

    def update_system_metrics(self):
        """Update system metrics from psutil."""
        try:
            process = psutil.Process(os.getpid())
            self.process_memory_bytes.labels(service=self.service_name).set(process.memory_info().rss)
            # num_fds() is POSIX only
            if hasattr(process, "num_fds"):
                self.process_open_fds.labels(service=self.service_name).set(process.num_fds())
        except psutil.Error as e:
            log.debug("metrics.process_unavailable", error=str(e))

    def record_events_received(self, schema: str, event_type: str, count: int = 1):
        """Record events received on the webhook."""
        self.events_received_total.labels(schema=schema, event_type=event_type).inc(count)

    def record_publish(self, schema: str, count: int, duration_s: float, error: BaseException | None = None):
        """Record one publish call to an Event Grid topic."""
        self.publish_duration.labels(schema=schema).observe(duration_s)
        if error is None:
            self.events_published_total.labels(schema=schema).inc(count)
        else:
            self.publish_failures_total.labels(schema=schema, error_type=type(error).__name__).inc()
