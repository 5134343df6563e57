"""Configured target listing with recent fetch statistics."""
from fastapi import APIRouter, Depends

from aggregate_exporter.api.dependencies import get_service_registry
from aggregate_exporter.core.metrics import target_metric_name
from aggregate_exporter.services.registry import ServiceRegistry

router = APIRouter()


@router.get("/targets", summary="List configured targets and their index for ?t=")
async def list_targets(registry: ServiceRegistry = Depends(get_service_registry)) -> dict:
    return {
        "targets": [
            {
                "index": index,
                "url": target,
                "stats": registry.stats.summary(target_metric_name(target)),
            }
            for index, target in enumerate(registry.targets)
        ],
    }
