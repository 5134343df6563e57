"""Result types flowing from the fetchers to the aggregator."""
from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import Metric

from aggregate_exporter.core.exceptions import TargetError

# Family name -> metric family, as produced by the codec.
FamilyMap = dict[str, Metric]


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one fetch against one target.

    Exactly one of ``families`` and ``error`` is set; ``seconds_taken`` is
    always recorded.
    """

    target: str
    seconds_taken: float
    families: FamilyMap | None = None
    error: TargetError | None = None

    def __post_init__(self) -> None:
        if (self.families is None) == (self.error is None):
            raise ValueError("FetchResult needs exactly one of families or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, target: str, seconds_taken: float, families: FamilyMap) -> "FetchResult":
        return cls(target=target, seconds_taken=seconds_taken, families=families)

    @classmethod
    def failure(cls, target: str, seconds_taken: float, error: TargetError) -> "FetchResult":
        return cls(target=target, seconds_taken=seconds_taken, error=error)
