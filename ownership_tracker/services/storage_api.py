from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..excel.reader import StorageEmpty, StorageError, StorageMalformed, StorageNotFound
from ..excel.writer import WriteFailure
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.service_record import ServiceRecord
from .record_store import RecordStore

"""Storage boundary: GET / POST over the backing workbook.

Exceptions never cross this boundary; each failure becomes a status code and
an ``{error}`` body, and is recorded in the JSON Lines error log.

GET  -> 200 {success, data, totalRows} | 404 missing | 400 empty | 500 other
POST -> 200 {success, message, updatedRows, fileName} | 400 bad payload | 500 write failure
"""

__all__ = [
    "ApiResponse",
    "StorageEndpoint",
]

logger = logging.getLogger(__name__)

SOURCE = "storage"


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200


def _read_failure(status: int, message: str) -> ApiResponse:
    return ApiResponse(status, {"success": False, "error": message, "data": [], "totalRows": 0})


class StorageEndpoint:
    def __init__(
        self,
        store: RecordStore,
        error_log: ErrorLogBuffer,
        *,
        default_file_name: str = "service_data.xlsx",
    ) -> None:
        self.store = store
        self.error_log = error_log
        self.default_file_name = default_file_name

    def _record_failure(self, error_type: str, message: str) -> None:
        logger.error("%s: %s", error_type, message)
        self.error_log.append(ErrorRecord.create(SOURCE, self.store.path.name, error_type, message))
        self.error_log.flush()

    def get(self) -> ApiResponse:
        try:
            result = self.store.load()
        except StorageNotFound as e:
            self._record_failure("FILE_NOT_FOUND", str(e))
            return _read_failure(404, e.user_message)
        except StorageEmpty as e:
            self._record_failure("FILE_EMPTY", str(e))
            return _read_failure(400, e.user_message)
        except StorageMalformed as e:
            self._record_failure("FILE_MALFORMED", str(e))
            return _read_failure(500, f"Failed to read Excel file: {e}")
        except StorageError as e:
            self._record_failure("STORAGE_ERROR", str(e))
            return _read_failure(500, f"Failed to read Excel file: {e}")

        data = [r.to_dict() for r in result.records]
        return ApiResponse(200, {"success": True, "data": data, "totalRows": len(data)})

    def post(self, payload: Mapping[str, Any] | None) -> ApiResponse:
        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, list) or not all(isinstance(row, Mapping) for row in data):
            self._record_failure("INVALID_PAYLOAD", "request body has no list of records under 'data'")
            return ApiResponse(400, {"success": False, "error": "Invalid data format"})

        preserve_headers = bool(payload.get("preserveHeaders", False))
        file_name = payload.get("fileName") or self.default_file_name
        keys = self.store.schema.keys
        records = [ServiceRecord.from_dict(row, keys) for row in data]

        try:
            result = self.store.save(records, preserve_headers=preserve_headers)
        except WriteFailure as e:
            self._record_failure("WRITE_FAILURE", str(e))
            return ApiResponse(500, {"success": False, "error": f"Failed to write Excel file: {e}"})

        return ApiResponse(
            200,
            {
                "success": True,
                "message": "Excel file updated successfully",
                "updatedRows": result.updated_rows,
                "fileName": file_name,
            },
        )
