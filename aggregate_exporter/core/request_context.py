"""Request context helpers for logging."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return uuid4().hex


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set(None)


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    """Bind ``request_id`` for the duration of the block.

    Tasks created inside the block copy the context, so per-target fetch
    tasks log under the id of the scrape that spawned them.
    """
    token = _request_id.set(request_id)
    try:
        yield
    finally:
        _request_id.reset(token)
