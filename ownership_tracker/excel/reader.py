from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.schema import SchemaDefinition, SchemaVariant, get_schema
from ..models.service_record import ServiceRecord, utc_now_iso
from ..services.completion import full_completion
from .headers import HeaderMapping, detect_variant, reconcile_headers

"""Workbook reader.

Only the first sheet is read. Row 1 holds the headers, every following row is
a data row; a row whose cells are all blank is skipped. Cells are read raw
(``header=None``, ``dtype=object``) so that header reconciliation sees the
original header text.
"""

__all__ = [
    "StorageError",
    "StorageNotFound",
    "StorageEmpty",
    "StorageMalformed",
    "ParsedSheet",
    "read_first_sheet",
    "parse_records",
    "read_records",
    "generate_row_id",
]

_ID_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


class StorageError(Exception):
    """Base class for backing-file failures surfaced to the caller."""
    user_message = "The service data file could not be used."


class StorageNotFound(StorageError):
    user_message = "Excel file not found"


class StorageEmpty(StorageError):
    user_message = "Excel file is empty"


class StorageMalformed(StorageError):
    user_message = "Excel file could not be read"


@dataclass(frozen=True)
class ParsedSheet:
    variant: SchemaVariant
    headers: list[str]
    records: list[ServiceRecord]
    header_mapping: HeaderMapping = field(default_factory=HeaderMapping)

    @property
    def unmatched_headers(self) -> list[str]:
        return list(self.header_mapping.unmatched)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> str:
    """Stringify a cell the way it reads in the sheet (``12.0`` -> ``12``)."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def generate_row_id(row: list[Any], index: int) -> str:
    """Derive a record id from the first non-empty text cell and the row index.

    Ids are only stable while the file is unchanged; they are not written back.
    """
    for cell in row:
        if isinstance(cell, str) and cell.strip():
            return f"row-{_ID_UNSAFE.sub('-', cell).lower()}-{index}"
    return f"row-{index}"


def read_first_sheet(path: Path) -> list[list[Any]]:
    """Return the first sheet of ``path`` as raw rows.

    Raises:
        StorageNotFound: file does not exist
        StorageMalformed: workbook cannot be opened or parsed
        StorageEmpty: the first sheet has no rows at all
    """
    if not path.exists():
        raise StorageNotFound(f"excel file not found: {path}")
    try:
        df = pd.read_excel(
            path,
            sheet_name=0,
            header=None,
            dtype=object,
            engine="openpyxl",
            keep_default_na=False,  # "NA" などの文字列をそのまま保持
        )
    except Exception as e:  # openpyxl/zipfile raise a wide range of types here
        raise StorageMalformed(f"failed to read excel file {path.name}: {e}") from e
    if df.shape[0] == 0:
        raise StorageEmpty(f"excel file is empty: {path.name}")
    return [list(row) for row in df.itertuples(index=False, name=None)]


def parse_records(
    rows: list[list[Any]],
    schema: SchemaDefinition | None = None,
) -> ParsedSheet:
    """Turn raw rows (row 0 = headers) into ServiceRecords.

    When ``schema`` is None the variant is detected from the header row.
    """
    if not rows:
        raise StorageEmpty("no rows to parse")

    headers = [_cell_text(h) for h in rows[0]]
    if schema is None:
        schema = get_schema(detect_variant(headers))
    header_mapping = reconcile_headers(headers, schema)
    keys = schema.keys
    stamp = utc_now_iso()

    records: list[ServiceRecord] = []
    for raw in rows[1:]:
        if all(_is_blank(cell) for cell in raw):
            continue
        values: dict[str, str] = {}
        for col_index, header in enumerate(headers):
            key = header_mapping.key_for(header)
            if key is None or key in values:
                # duplicate header text: leftmost column wins
                continue
            values[key] = _cell_text(raw[col_index]) if col_index < len(raw) else ""
        record = ServiceRecord.create(
            generate_row_id(raw, len(records)),
            keys,
            values,
            last_updated=stamp,
        )
        records.append(replace(record, completion=full_completion(record, schema)))

    return ParsedSheet(
        variant=schema.variant,
        headers=headers,
        records=records,
        header_mapping=header_mapping,
    )


def read_records(path: Path, variant: SchemaVariant | None = None) -> ParsedSheet:
    schema = get_schema(variant) if variant is not None else None
    return parse_records(read_first_sheet(path), schema)
