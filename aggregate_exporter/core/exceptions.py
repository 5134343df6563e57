"""Common exception helpers for the aggregation proxy."""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base exception for application specific errors."""

    status_code = 500
    error_code = "app_error"
    default_detail = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.extra = extra or {}


class DomainError(AppError):
    """Normalized domain error surfaced to API handlers."""


class BadRequestError(DomainError):
    status_code = 400
    error_code = "bad_request"
    default_detail = "Bad Request"


class ServiceUnavailableError(DomainError):
    status_code = 503
    error_code = "service_unavailable"
    default_detail = "Service unavailable."


class TargetError(AppError):
    """Failure local to a single scrape target.

    Target errors are recorded on the fetch result and logged; they never
    reach the API layer.
    """

    error_code = "target_error"

    def __init__(self, target: str, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        self.target = target
        payload = {"target": target}
        if extra:
            payload.update(extra)
        super().__init__(detail or f"{target} failed", extra=payload)


class TargetTransportError(TargetError):
    """The target could not be reached or did not answer in time."""

    error_code = "target_transport_error"


class TargetDecodeError(TargetError):
    """The target answered with a payload that is not valid exposition text."""

    error_code = "target_decode_error"
