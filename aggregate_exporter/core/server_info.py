"""Server metadata helpers used by the HTTP API."""
from __future__ import annotations

import time

SERVER_START_TIME = time.time()


def get_uptime_seconds() -> float:
    """Return the number of seconds that have elapsed since startup."""

    return max(0.0, time.time() - SERVER_START_TIME)
