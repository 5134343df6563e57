"""Health check endpoint."""
from fastapi import APIRouter, Depends

from aggregate_exporter.api.dependencies import get_service_registry
from aggregate_exporter.core.server_info import get_uptime_seconds
from aggregate_exporter.services.registry import ServiceRegistry

router = APIRouter()


@router.get("/health", summary="Health check")
async def health_check(registry: ServiceRegistry = Depends(get_service_registry)) -> dict:
    return {
        "status": "ok",
        "targets": len(registry.targets),
        "uptime_seconds": round(get_uptime_seconds(), 3),
    }
