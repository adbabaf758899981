from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.schema import SchemaDefinition
from ..models.service_record import ServiceRecord
from .reader import StorageError

"""Workbook writer.

Always a full-document rewrite of a single sheet: header row from the schema's
display headers (schema order), then one row per record. Two equivalent
shapes are supported and both parse back to the same canonical data:

- positional: array-of-arrays, header row written as the first data row
- keyed: one mapping per record keyed by display header (``preserve_headers``)

The workbook is written to a temporary file next to the target and moved over
it with ``os.replace``, so a crash mid-write leaves the previous file intact.
"""

__all__ = [
    "WriteFailure",
    "build_positional_rows",
    "build_keyed_rows",
    "write_workbook",
]

PIXELS_PER_CHAR = 7


class WriteFailure(StorageError):
    user_message = "Failed to write Excel file. Your changes are kept; try saving again."


def build_positional_rows(records: Sequence[ServiceRecord], schema: SchemaDefinition) -> list[list[str]]:
    rows: list[list[str]] = [schema.headers]
    for record in records:
        rows.append([record.get(key) or "" for key in schema.keys])
    return rows


def build_keyed_rows(records: Sequence[ServiceRecord], schema: SchemaDefinition) -> list[dict[str, str]]:
    return [
        {column.header: record.get(column.key) or "" for column in schema.columns}
        for record in records
    ]


def _to_frame(records: Sequence[ServiceRecord], schema: SchemaDefinition, preserve_headers: bool) -> tuple[pd.DataFrame, bool]:
    if preserve_headers:
        return pd.DataFrame(build_keyed_rows(records, schema), columns=schema.headers), True
    return pd.DataFrame(build_positional_rows(records, schema)), False


def write_workbook(
    path: Path,
    records: Sequence[ServiceRecord],
    schema: SchemaDefinition,
    *,
    sheet_name: str = "Service Data",
    preserve_headers: bool = False,
) -> None:
    """Replace ``path`` with a workbook holding ``records``.

    Exceptions from pandas/openpyxl or the filesystem propagate unchanged; the
    record store decides whether to retry.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    frame, write_header = _to_frame(records, schema, preserve_headers)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".xlsx", dir=path.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        with pd.ExcelWriter(tmp_path, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=sheet_name, header=write_header, index=False)
            worksheet = writer.sheets[sheet_name]
            for index, column in enumerate(schema.columns, start=1):
                worksheet.column_dimensions[get_column_letter(index)].width = max(
                    1, column.width // PIXELS_PER_CHAR
                )
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
