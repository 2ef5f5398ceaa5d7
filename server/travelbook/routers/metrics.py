"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Request and booking metrics in Prometheus text format",
    response_class=Response,
)
async def metrics() -> Response:
    """Return the registry contents for Prometheus to scrape."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
