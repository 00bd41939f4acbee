"""
Prometheus metrics collection for the Horoscope API.

Provides business metrics for monitoring horoscope computation,
per-body ephemeris failures, error rates, and system health.
"""

from prometheus_client import (
    Counter, Histogram, Gauge, Info, CollectorRegistry,
    generate_latest, CONTENT_TYPE_LATEST
)
from typing import Dict, Any
import time


# Global metrics registry
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'horoscope_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'horoscope_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0],
    registry=REGISTRY
)

# Horoscope computation metrics
HOROSCOPES_COMPUTED = Counter(
    'horoscope_computed_total',
    'Total number of horoscopes computed',
    ['location'],
    registry=REGISTRY
)

HOROSCOPE_DURATION = Histogram(
    'horoscope_compute_duration_seconds',
    'Horoscope computation duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.2, 0.5],
    registry=REGISTRY
)

BODIES_SKIPPED = Counter(
    'horoscope_bodies_skipped_total',
    'Bodies omitted from a response after an ephemeris error',
    ['body'],
    registry=REGISTRY
)

# Error metrics
ERRORS_TOTAL = Counter(
    'horoscope_errors_total',
    'Total number of errors by category',
    ['error_code', 'error_category'],
    registry=REGISTRY
)

# System info
SYSTEM_INFO = Info(
    'horoscope_system_info',
    'System information',
    registry=REGISTRY
)

# Application uptime
APP_START_TIME = Gauge(
    'horoscope_app_start_time_seconds',
    'Unix timestamp when the application started',
    registry=REGISTRY
)


class MetricsCollector:
    """
    High-level metrics collector for business operations.

    Provides methods to record metrics for common operations
    with consistent labeling and timing.
    """

    def __init__(self):
        self.start_time = time.time()
        self.horoscopes = 0
        self.bodies_skipped = 0
        self.errors = 0
        APP_START_TIME.set(self.start_time)

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ):
        """Record HTTP request metrics."""
        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        REQUEST_DURATION.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

    def record_horoscope(self, location: str, duration_seconds: float):
        """Record a successfully computed horoscope."""
        HOROSCOPES_COMPUTED.labels(location=location).inc()
        HOROSCOPE_DURATION.observe(duration_seconds)
        self.horoscopes += 1

    def record_body_skipped(self, body: str):
        """Record a body dropped from the response after an ephemeris error."""
        BODIES_SKIPPED.labels(body=body).inc()
        self.bodies_skipped += 1

    def record_error(self, error_code: str):
        """Record error metrics."""
        # Extract category from error code (e.g., "INPUT.MISSING_REQUIRED" -> "INPUT")
        error_category = error_code.split('.')[0] if '.' in error_code else error_code

        ERRORS_TOTAL.labels(
            error_code=error_code,
            error_category=error_category
        ).inc()
        self.errors += 1

    def set_system_info(
        self,
        version: str,
        python_version: str,
        swisseph_version: str,
        sidereal_mode: str
    ):
        """Set system information metrics."""
        SYSTEM_INFO.info({
            'version': version,
            'python_version': python_version,
            'swisseph_version': swisseph_version,
            'sidereal_mode': sidereal_mode
        })

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get summary of key metrics for health checks."""
        return {
            "uptime_seconds": round(time.time() - self.start_time, 1),
            "horoscopes_computed": self.horoscopes,
            "bodies_skipped": self.bodies_skipped,
            "errors": self.errors
        }


# Global metrics collector instance
metrics = MetricsCollector()


def get_metrics_content() -> tuple[str, str]:
    """
    Get Prometheus metrics content for /metrics endpoint.

    Returns:
        Tuple of (content, content_type)
    """
    content = generate_latest(REGISTRY)
    return content.decode('utf-8'), CONTENT_TYPE_LATEST


class RequestMetricsMiddleware:
    """
    Middleware to automatically record request metrics.

    Records request count, duration, and response status for all requests.
    """

    KNOWN_ENDPOINTS = {"/horoscope", "/healthz", "/metrics"}

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        endpoint = self._normalize_endpoint(scope["path"])

        start_time = time.perf_counter()
        status_code = 500  # Default to error

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.perf_counter() - start_time
            metrics.record_request(method, endpoint, status_code, duration)

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path for metrics grouping."""
        if "?" in path:
            path = path.split("?")[0]

        if path in self.KNOWN_ENDPOINTS:
            return path
        elif path.startswith("/docs"):
            return "/docs"
        elif path.startswith("/openapi"):
            return "/openapi"
        else:
            return "/other"
