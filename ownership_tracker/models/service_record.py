from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

"""ServiceRecord model: one service-ownership row of the workbook.

Every canonical key of the active schema is always present in ``values``
(empty string when the cell was blank or the column was missing), so callers
never need ``None`` checks. ``completion`` is derived data and is recomputed by
whoever changes ``values``; it is never read back from the file.
"""

__all__ = [
    "ServiceRecord",
    "utc_now_iso",
]


def utc_now_iso() -> str:
    """Current UTC time as ISO8601 with millisecond precision and ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    values: dict[str, str] = field(default_factory=dict)
    completion: int = 0
    last_updated: str = ""

    @classmethod
    def create(
        cls,
        record_id: str,
        keys: Iterable[str],
        values: Mapping[str, Any] | None = None,
        *,
        completion: int = 0,
        last_updated: str | None = None,
    ) -> ServiceRecord:
        """Build a record with every key in ``keys`` present.

        Values not listed in ``keys`` are dropped; ``None`` becomes ``""``.
        """
        values = values or {}
        normalized: dict[str, str] = {}
        for key in keys:
            raw = values.get(key)
            normalized[key] = "" if raw is None else str(raw).strip()
        return cls(
            id=record_id,
            values=normalized,
            completion=completion,
            last_updated=last_updated if last_updated is not None else utc_now_iso(),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], keys: Iterable[str]) -> ServiceRecord:
        """Rebuild a record from its API body form (see ``to_dict``)."""
        return cls.create(
            str(data.get("id") or ""),
            keys,
            data,
            completion=int(data.get("completion") or 0),
            last_updated=str(data.get("lastUpdated") or "") or None,
        )

    def get(self, key: str) -> str:
        return self.values.get(key, "")

    def with_value(self, key: str, value: str) -> ServiceRecord:
        updated = dict(self.values)
        updated[key] = value
        return replace(self, values=updated)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"id": self.id}
        body.update(self.values)
        body["completion"] = self.completion
        body["lastUpdated"] = self.last_updated
        return body
