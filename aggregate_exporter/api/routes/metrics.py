"""Aggregated scrape endpoint."""
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from aggregate_exporter.api.dependencies import get_aggregator, select_targets
from aggregate_exporter.services.aggregator import Aggregator

router = APIRouter()


@router.get(
    "/metrics",
    summary="Scrape all targets, or the one selected by ?t=<index>, and return the merged metrics",
    response_class=Response,
)
async def read_metrics(
    targets: list[str] = Depends(select_targets),
    aggregator: Aggregator = Depends(get_aggregator),
) -> Response:
    body = await aggregator.aggregate_bytes(targets)
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
