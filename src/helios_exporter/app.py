"""
Helios Exporter - FastAPI Application

Serves the landing page, the Prometheus metrics endpoint and a health check.
"""

import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse

from . import __version__
from .config import ExporterConfig
from .metrics import ExporterMetrics

logger = logging.getLogger(__name__)

LANDING_PAGE = """<html>
<head><title>Helios Exporter</title></head>
<body>
<h1>Helios Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
"""


def create_app(metrics: ExporterMetrics, config: ExporterConfig) -> FastAPI:
    """Create the exporter's HTTP application."""
    app = FastAPI(
        title="Helios Exporter",
        description="Prometheus exporter for pluggable metrics sources.",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    metrics_path = config.metrics_path

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request metrics."""
        start_time = time.time()
        response = await call_next(request)

        handler = request.url.path if request.url.path in (metrics_path, "/", "/health") else "other"
        metrics.record_request(
            handler=handler,
            method=request.method,
            status=response.status_code,
            latency=time.time() - start_time,
        )
        return response

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> str:
        """Landing page linking to the metrics endpoint."""
        return LANDING_PAGE.format(metrics_path=metrics_path)

    # Plain def: FastAPI runs it in a worker thread, where the collector
    # can start its own event loop for the scrape.
    @app.get(metrics_path, include_in_schema=False)
    def prometheus_metrics() -> Response:
        """Run one scrape and return it in the Prometheus text format."""
        return Response(content=metrics.generate(), media_type=metrics.content_type())

    @app.get("/health")
    async def health_check() -> dict:
        """Check exporter health."""
        return {
            "status": "healthy",
            "version": __version__,
            "sources": list(metrics.collector.sources),
        }

    return app
