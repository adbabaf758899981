from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..models.schema import SchemaDefinition
from ..models.service_record import ServiceRecord, utc_now_iso
from .completion import full_completion

"""Update merger: in-memory record edits.

Every edit returns new ``ServiceRecord`` instances; the input lists are never
mutated. Nothing here touches the backing file, persistence is the record
store's job.
"""

__all__ = [
    "PatchSet",
    "UnknownFieldError",
    "patch_record",
    "update_records",
    "batch_patch",
    "add_row",
    "delete_row",
    "duplicate_row",
    "validate_records",
]

logger = logging.getLogger(__name__)

# ordered (field, value) assignments
PatchSet = list[tuple[str, str]]

NEW_SERVICE_NAME = "New Service"
COPY_SUFFIX = " (Copy)"


class UnknownFieldError(ValueError):
    """Raised when a patch names a field outside the active schema."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def patch_record(
    record: ServiceRecord,
    field: str,
    value: str,
    schema: SchemaDefinition,
) -> ServiceRecord:
    """Return a copy of ``record`` with ``field`` set.

    ``last_updated`` is refreshed and ``completion`` recomputed from the new
    values.

    Raises:
        UnknownFieldError: ``field`` is not a column of ``schema``
    """
    if not schema.has_field(field):
        raise UnknownFieldError(f"unknown field for {schema.variant.value} schema: {field}")
    updated = record.with_value(field, "" if value is None else str(value))
    return replace(
        updated,
        completion=full_completion(updated, schema),
        last_updated=utc_now_iso(),
    )


def update_records(
    records: Sequence[ServiceRecord],
    record_id: str,
    field: str,
    value: str,
    schema: SchemaDefinition,
) -> list[ServiceRecord]:
    """Cell edit: patch the record whose id is ``record_id``; others are kept as-is."""
    return [
        patch_record(r, field, value, schema) if r.id == record_id else r
        for r in records
    ]


def batch_patch(
    records: Sequence[ServiceRecord],
    ids: Iterable[str],
    patch_set: PatchSet,
    schema: SchemaDefinition,
) -> list[ServiceRecord]:
    """Apply every assignment of ``patch_set`` to each record named in ``ids``.

    Parameters
    ----------
    records: current record list (file order is preserved in the result)
    ids: target record ids; processed in the given order, duplicates ignored
    patch_set: ordered assignments, applied sequentially per record
    schema: active schema; every field is checked before anything is applied

    Returns
    -------
    list[ServiceRecord]: new list with the targeted records replaced
    """
    for field_name, _ in patch_set:
        if not schema.has_field(field_name):
            raise UnknownFieldError(f"unknown field for {schema.variant.value} schema: {field_name}")

    result = list(records)
    position = {r.id: i for i, r in enumerate(result)}
    seen: set[str] = set()
    for record_id in ids:
        if record_id in seen:
            continue
        seen.add(record_id)
        index = position.get(record_id)
        if index is None:
            logger.warning("batch patch skipped unknown record id: %s", record_id)
            continue
        record = result[index]
        for field_name, value in patch_set:
            record = patch_record(record, field_name, value, schema)
        result[index] = record
    return result


def add_row(records: Sequence[ServiceRecord], schema: SchemaDefinition) -> list[ServiceRecord]:
    """Append an empty record named ``New Service``."""
    record = ServiceRecord.create(
        f"new-row-{_now_ms()}",
        schema.keys,
        {schema.service_name_field: NEW_SERVICE_NAME},
    )
    record = replace(record, completion=full_completion(record, schema))
    return [*records, record]


def delete_row(records: Sequence[ServiceRecord], record_id: str) -> list[ServiceRecord]:
    return [r for r in records if r.id != record_id]


def duplicate_row(
    records: Sequence[ServiceRecord],
    record_id: str,
    schema: SchemaDefinition,
) -> list[ServiceRecord]:
    """Insert a copy of ``record_id`` right after it (no-op for unknown ids)."""
    result = list(records)
    for index, source in enumerate(result):
        if source.id != record_id:
            continue
        name_field = schema.service_name_field
        copy = ServiceRecord.create(
            f"duplicate-{_now_ms()}",
            schema.keys,
            {**source.values, name_field: f"{source.get(name_field)}{COPY_SUFFIX}"},
        )
        copy = replace(copy, completion=full_completion(copy, schema))
        result.insert(index + 1, copy)
        break
    return result


def validate_records(records: Sequence[ServiceRecord], schema: SchemaDefinition) -> list[str]:
    """Collect non-blocking validation messages (row numbers are 1-based)."""
    if not records:
        return ["No data rows found"]
    errors: list[str] = []
    for number, record in enumerate(records, start=1):
        if not record.id:
            errors.append(f"Row {number}: Missing ID")
        if not record.get(schema.service_name_field).strip():
            errors.append(f"Row {number}: Missing service name")
    return errors
