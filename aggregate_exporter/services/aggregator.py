"""Fan-out/fan-in aggregation of several exposition endpoints into one document."""
from __future__ import annotations

import asyncio
import io
import logging
import time
from typing import Awaitable, BinaryIO, Callable, Sequence

from aggregate_exporter.core.config import DEFAULT_LABEL_NAME
from aggregate_exporter.core.exceptions import TargetTransportError
from aggregate_exporter.models.domain import FamilyMap, FetchResult
from aggregate_exporter.services.codec import copy_family, encode_families, label_family, merge_family

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[FetchResult]]


class Aggregator:
    """Scrape targets concurrently and merge their metric families.

    Every call owns its own output mapping; fetch tasks only ever put
    results on the queue, and the calling task is the single writer of the
    merged mapping.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        label_enabled: bool = True,
        label_name: str = DEFAULT_LABEL_NAME,
    ) -> None:
        self._fetch = fetch
        self._label_enabled = label_enabled
        self._label_name = label_name

    async def aggregate(self, targets: Sequence[str], output: BinaryIO) -> None:
        """Scrape ``targets`` and write the merged exposition text to ``output``.

        Failed targets are logged and skipped; the document is written even
        when every target fails.
        """

        results: asyncio.Queue[FetchResult] = asyncio.Queue(maxsize=max(1, len(targets)))
        tasks = [
            asyncio.create_task(self._fetch_into(target, results), name=f"fetch-{idx}")
            for idx, target in enumerate(targets)
        ]

        families: FamilyMap = {}
        try:
            for _ in range(len(targets)):
                result = await results.get()
                self._merge_result(families, result)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        output.write(encode_families(families))

    async def aggregate_bytes(self, targets: Sequence[str]) -> bytes:
        buffer = io.BytesIO()
        await self.aggregate(targets, buffer)
        return buffer.getvalue()

    async def _fetch_into(self, target: str, results: asyncio.Queue[FetchResult]) -> None:
        start = time.perf_counter()
        try:
            result = await self._fetch(target)
        except Exception as exc:  # noqa: BLE001
            result = FetchResult.failure(
                target,
                time.perf_counter() - start,
                TargetTransportError(target, f"failed to fetch URL {target} due to error: {exc}"),
            )
        await results.put(result)

    def _merge_result(self, families: FamilyMap, result: FetchResult) -> None:
        if result.error is not None:
            logger.error("Fetch error: %s", result.error.detail)
            return

        for name, family in (result.families or {}).items():
            if self._label_enabled:
                family = label_family(family, self._label_name, result.target)
            existing = families.get(name)
            if existing is None:
                families[name] = copy_family(family)
            else:
                merge_family(existing, family)

        logger.debug("OK: %s was refreshed in %.3f seconds", result.target, result.seconds_taken)
