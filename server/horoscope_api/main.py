# server/horoscope_api/main.py
import logging
import os
import sys
import time
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from . import __version__, api
from .config import AppConfig, load_config, print_config
from .ephemeris.swiss import SIDEREAL_MODE_NAME, SwissEphemeris
from .errors import register_error_handlers
from .horoscope import HoroscopeService
from .locations import load_city_table
from .obs.logging import StructuredLogger, TimedOperation, setup_logging, set_request_context
from .obs.metrics import metrics, get_metrics_content, RequestMetricsMiddleware
from .schemas import HealthzResponse

logger = logging.getLogger(__name__)
business_logger = StructuredLogger(__name__)


def create_app(config: AppConfig = None, ephemeris=None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Effective configuration; loaded from ``HOROSCOPE_CONFIG``
            (default ``config.yaml``) when omitted
        ephemeris: Ephemeris adapter; a ``SwissEphemeris`` on the configured
            data path when omitted
    """
    cfg = config or load_config(os.getenv("HOROSCOPE_CONFIG", "config.yaml"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        setup_logging(level=cfg.logging.level, enable_json=cfg.logging.json_output)
        business_logger.startup_event("application", "starting")
        print_config(cfg)

        startup_start = time.perf_counter()

        # Ephemeris data path is process-wide; set once
        engine = ephemeris or SwissEphemeris(cfg.ephemeris.ephe_path)
        business_logger.startup_event(
            "ephemeris", "ready",
            details={
                "ephe_path": cfg.ephemeris.ephe_path,
                "sidereal_mode": SIDEREAL_MODE_NAME,
                "swisseph_version": getattr(engine, "version", "unknown")
            }
        )

        with TimedOperation(business_logger, "load_city_table", path=cfg.reference.cities_file):
            cities = load_city_table(cfg.reference.cities_file)
        business_logger.startup_event("city_table", "ready", details={"cities": len(cities)})

        service = HoroscopeService(
            engine,
            cities,
            include_equatorial=cfg.ephemeris.include_equatorial,
            zero_as_unavailable=cfg.ephemeris.zero_as_unavailable,
        )

        metrics.set_system_info(
            version=__version__,
            python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            swisseph_version=getattr(engine, "version", "unknown"),
            sidereal_mode=SIDEREAL_MODE_NAME
        )

        # Read per request by the API routes
        app.state.config = cfg
        app.state.service = service

        business_logger.startup_event(
            "application", "ready",
            duration_ms=(time.perf_counter() - startup_start) * 1000
        )
        logger.info(f"Horoscope API running at http://localhost:{cfg.api.port}")

        yield

        business_logger.startup_event("application", "stopped")
        app.state.service = None

    app = FastAPI(
        title="Horoscope API",
        version=__version__,
        description="Sidereal (Lahiri) planetary positions for Indian cities",
        lifespan=lifespan
    )

    app.add_middleware(RequestMetricsMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.api.cors_origins or ["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Request correlation and access logging."""
        request_id = set_request_context(request.headers.get("x-request-id"))
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "HTTP request processed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "user_agent": request.headers.get("user-agent", "unknown")
            }
        )

        response.headers["X-Request-Id"] = request_id
        return response

    @app.get("/healthz", response_model=HealthzResponse)
    def healthz(request: Request):
        """Health check with ephemeris and reference data status."""
        service = getattr(request.app.state, "service", None)
        cfg = getattr(request.app.state, "config", None)

        if service is None or cfg is None:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "error": "Service not initialized"
                }
            )

        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "ephemeris": {
                "ephe_path": cfg.ephemeris.ephe_path,
                "sidereal_mode": SIDEREAL_MODE_NAME,
                "swisseph_version": getattr(service.ephemeris, "version", "unknown"),
                "bodies": [b.name for b in service.bodies]
            },
            "locations": {
                "count": len(service.cities),
                "names": service.cities.names
            },
            "metrics": metrics.get_metrics_summary()
        }

    @app.get("/metrics", response_class=PlainTextResponse)
    def metrics_endpoint():
        """Prometheus metrics endpoint."""
        content, content_type = get_metrics_content()
        return PlainTextResponse(content, media_type=content_type)

    app.include_router(api.router)
    register_error_handlers(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = load_config(os.getenv("HOROSCOPE_CONFIG", "config.yaml"))
    uvicorn.run(create_app(cfg), host=cfg.api.host, port=cfg.api.port)
