"""Root API router that aggregates all endpoint modules."""
from fastapi import APIRouter

from aggregate_exporter.api.routes import health, metrics, targets

api_router = APIRouter()
api_router.include_router(metrics.router, tags=["metrics"])
api_router.include_router(targets.router, tags=["targets"])
api_router.include_router(health.router, tags=["health"])
