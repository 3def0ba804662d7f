# backend/booking_engine/main.py
"""FastAPI application exposing the booking engine."""

import logging

from fastapi import FastAPI, Response

from . import __version__
from .core.config import settings
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes import bookings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(title="Booking Engine", version=__version__)
    app.include_router(bookings.router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.get_content_type(),
        )

    logger.info("Booking engine application created")
    return app


app = create_app()
