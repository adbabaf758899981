from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured failure log.

One JSON Lines entry per storage or directory failure. The key set is fixed:
``timestamp, source, file, record_id, error_type, message``. ``record_id`` is
``"-"`` for file-level failures where no single record is involved.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL",
]

FILE_LEVEL = "-"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Boundary that failed (``storage`` or ``directory``)
        file: Workbook file name, or ``""`` for directory failures
        record_id: Record id, or ``"-"`` for file-level failures
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str
    source: str
    file: str
    record_id: str
    error_type: str
    message: str

    @staticmethod
    def create(
        source: str,
        file: str,
        error_type: str,
        message: str,
        record_id: str = FILE_LEVEL,
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            file=file,
            record_id=record_id,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
