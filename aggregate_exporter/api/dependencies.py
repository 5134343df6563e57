"""FastAPI dependency providers."""
import re

from fastapi import Depends, Query, Request

from aggregate_exporter.core.exceptions import BadRequestError
from aggregate_exporter.services.aggregator import Aggregator
from aggregate_exporter.services.registry import ServiceRegistry

_INDEX_RE = re.compile(r"[0-9]+")


def get_service_registry(request: Request) -> ServiceRegistry:
    """Return the service registry stored on the FastAPI application state."""

    registry = request.app.state.services
    if not isinstance(registry, ServiceRegistry):
        raise RuntimeError("Service registry not initialised")
    return registry


def get_aggregator(registry: ServiceRegistry = Depends(get_service_registry)) -> Aggregator:
    return registry.aggregator


def select_targets(
    t: str | None = Query(default=None, description="Index of a single configured target"),
    registry: ServiceRegistry = Depends(get_service_registry),
) -> list[str]:
    """Resolve the optional ``t`` query parameter into the targets to scrape.

    An empty value counts as absent. Anything else must be a non-negative
    integer below the number of configured targets.
    """

    targets = registry.targets
    if not t:
        return list(targets)
    if not _INDEX_RE.fullmatch(t):
        raise BadRequestError(extra={"t": t})
    index = int(t)
    if index >= len(targets):
        raise BadRequestError(extra={"t": t, "targets": len(targets)})
    return [targets[index]]
