from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from ..models.save_result import ProgressSnapshot
from ..models.schema import SchemaDefinition
from ..models.service_record import ServiceRecord

"""Completion scoring.

Two independent measures over the same record:

- ``full_completion``: share of all schema columns that are filled
  (stored on the record, shown per row)
- ``key_field_completion``: share of the schema's 4 key fields that are
  filled (team, tech service, service name, CMDB id; drives progress
  tracking)

They answer different questions and are never combined.
"""

__all__ = [
    "round_half_up",
    "full_completion",
    "key_field_completion",
    "overall_progress",
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round`` is banker's)."""
    return int(math.floor(value + 0.5))


def _filled(record: ServiceRecord, keys: Iterable[str]) -> int:
    return sum(1 for key in keys if record.get(key).strip() != "")


def _percent(filled: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(100 * filled / total)


def full_completion(record: ServiceRecord, schema: SchemaDefinition) -> int:
    keys = schema.keys
    return _percent(_filled(record, keys), len(keys))


def key_field_completion(record: ServiceRecord, schema: SchemaDefinition) -> int:
    return _percent(_filled(record, schema.key_fields), len(schema.key_fields))


def overall_progress(records: Sequence[ServiceRecord], schema: SchemaDefinition) -> ProgressSnapshot:
    """Aggregate key-field completion across ``records``."""
    total = len(records)
    if total == 0:
        return ProgressSnapshot(total=0, completed=0, in_progress=0, not_started=0, average_completion=0)

    scores = [key_field_completion(r, schema) for r in records]
    completed = sum(1 for s in scores if s == 100)
    not_started = sum(1 for s in scores if s == 0)
    in_progress = total - completed - not_started

    average = round_half_up(100 * completed / total)
    if 0 < completed < total:
        average = max(1, average)

    return ProgressSnapshot(
        total=total,
        completed=completed,
        in_progress=in_progress,
        not_started=not_started,
        average_completion=average,
    )
