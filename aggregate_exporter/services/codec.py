"""Exposition format codec built on ``prometheus_client``.

Decoding goes through the ``prometheus_client`` text parser. Families are
keyed by the name the target exposed, not by the parser's normalised name:
the parser strips ``_total`` from counter families and appends it to counter
samples that lack it, and both are undone here so that ``requests_total``
and ``requests`` stay distinct and ``foo`` is not renamed ``foo_total``.

Encoding writes the 0.0.4 text format line by line under those same names.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from prometheus_client import Metric
from prometheus_client.parser import text_string_to_metric_families
from prometheus_client.samples import Sample
from prometheus_client.utils import floatToGoString

from aggregate_exporter.models.domain import FamilyMap

_TOTAL = "_total"

# Types the parser accepts that the 0.0.4 text format has no keyword for.
_TEXT_TYPES = {
    "unknown": "untyped",
    "gaugehistogram": "histogram",
    "info": "gauge",
    "stateset": "gauge",
}


class CodecError(ValueError):
    """Raised when a payload is not valid exposition text."""


def _declared_counters(text: str) -> list[str]:
    """Counter names in the order their ``# TYPE`` lines appear."""

    names = []
    for line in text.splitlines():
        parts = line.strip().split(None, 3)
        if len(parts) == 4 and parts[0] == "#" and parts[1] == "TYPE" and parts[3].strip() == "counter":
            names.append(parts[2].strip('"'))
    return names


def _restore_counter(family: Metric, declared: list[str]) -> Metric:
    """Give a parsed counter back the name and sample names it was exposed with."""

    base = family.name
    exposed = next((name for name in declared if name in (base, base + _TOTAL)), base + _TOTAL)
    if exposed in declared:
        declared.remove(exposed)
    if exposed.endswith(_TOTAL):
        samples = family.samples
    else:
        samples = [
            sample._replace(name=exposed) if sample.name == exposed + _TOTAL else sample
            for sample in family.samples
        ]
    restored = Metric(exposed, family.documentation, family.type)
    restored.samples = list(samples)
    return restored


def decode_families(payload: bytes | str) -> FamilyMap:
    """Parse exposition text into an exposed-name -> family mapping.

    A name that shows up more than once in the same payload is folded into
    its first occurrence.
    """

    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        declared = _declared_counters(text)
        families: FamilyMap = {}
        # The parser is lazy, so errors surface while iterating.
        for family in text_string_to_metric_families(text):
            if family.type == "counter":
                family = _restore_counter(family, declared)
            existing = families.get(family.name)
            if existing is None:
                families[family.name] = family
            else:
                merge_family(existing, family)
    except ValueError as exc:
        raise CodecError(str(exc) or exc.__class__.__name__) from exc
    return families


def _escape_help(text: str) -> str:
    return text.replace("\\", r"\\").replace("\n", r"\n")


def _escape_label_value(value: str) -> str:
    return value.replace("\\", r"\\").replace("\n", r"\n").replace('"', r"\"")


def _sample_line(sample: Sample) -> str:
    line = sample.name
    if sample.labels:
        # Insertion order: the source label, when added, comes last.
        pairs = ",".join(f'{name}="{_escape_label_value(value)}"' for name, value in sample.labels.items())
        line += "{" + pairs + "}"
    line += " " + floatToGoString(sample.value)
    if sample.timestamp is not None:
        line += f" {int(float(sample.timestamp) * 1000):d}"
    return line + "\n"


def encode_families(families: Mapping[str, Metric]) -> bytes:
    """Serialise families in the text exposition format.

    Each family is written under its mapping key. ``# HELP`` is left out when
    there is no help text, and families without samples are skipped. An
    empty mapping yields an empty document.
    """

    lines: list[str] = []
    for name, family in families.items():
        if not family.samples:
            continue
        if family.documentation:
            lines.append(f"# HELP {name} {_escape_help(family.documentation)}\n")
        lines.append(f"# TYPE {name} {_TEXT_TYPES.get(family.type, family.type)}\n")
        lines.extend(_sample_line(sample) for sample in family.samples)
    return "".join(lines).encode("utf-8")


def copy_family(family: Metric, samples: Iterable[Sample] | None = None) -> Metric:
    """Return a new family with the metadata of ``family`` and its own sample list."""

    copied = Metric(family.name, family.documentation, family.type, family.unit)
    copied.samples = list(family.samples if samples is None else samples)
    return copied


def label_family(family: Metric, label_name: str, label_value: str) -> Metric:
    """Return a copy of ``family`` with ``label_name=label_value`` on every sample.

    Samples are immutable tuples, so the input family and the label dicts of
    its samples are left untouched. An existing label of the same name is
    replaced.
    """

    return copy_family(
        family,
        (sample._replace(labels={**sample.labels, label_name: label_value}) for sample in family.samples),
    )


def merge_family(into: Metric, family: Metric) -> Metric:
    """Append the samples of ``family`` to ``into``.

    Samples are concatenated without matching label sets, and ``into`` keeps
    its own name, type and help text even when ``family`` disagrees.
    """

    into.samples.extend(family.samples)
    return into
