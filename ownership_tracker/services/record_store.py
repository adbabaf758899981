from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import read_records
from ..excel.writer import WriteFailure, write_workbook
from ..models.config_models import RetryConfig, StorageConfig
from ..models.save_result import SaveResult
from ..models.schema import SchemaDefinition, SchemaVariant, get_schema
from ..models.service_record import ServiceRecord

"""Record store: the single backing workbook.

Every save is a whole-file rewrite, so a failed write can be retried without
risk of duplicating or interleaving rows. There is no locking; concurrent
writers race and the last complete write wins.
"""

__all__ = [
    "LoadResult",
    "RecordStore",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    records: list[ServiceRecord]
    variant: SchemaVariant
    headers: list[str] = field(default_factory=list)
    unmatched_headers: list[str] = field(default_factory=list)


class RecordStore:
    """Load and save ``ServiceRecord`` lists against one workbook.

    The schema variant is fixed by the constructor when given, otherwise it is
    detected on the first ``load`` and reused for every later load and save.
    """

    def __init__(
        self,
        path: Path,
        variant: SchemaVariant | None = None,
        *,
        retry: RetryConfig | None = None,
        sheet_name: str = "Service Data",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.path = Path(path)
        self.variant = variant
        self.retry = retry or RetryConfig()
        self.sheet_name = sheet_name
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: StorageConfig) -> RecordStore:
        return cls(
            config.file_path,
            config.schema_variant,
            retry=config.write_retry,
            sheet_name=config.sheet_name,
        )

    @property
    def schema(self) -> SchemaDefinition:
        """Active schema; v2 until a load has detected otherwise."""
        return get_schema(self.variant or SchemaVariant.V2)

    def load(self) -> LoadResult:
        """Parse the workbook. Storage errors from the reader propagate."""
        parsed = read_records(self.path, self.variant)
        if self.variant is None:
            self.variant = parsed.variant
            logger.info("detected %s schema in %s", parsed.variant.value, self.path.name)
        if parsed.unmatched_headers:
            logger.warning("ignored columns in %s: %s", self.path.name, ", ".join(parsed.unmatched_headers))
        return LoadResult(
            records=parsed.records,
            variant=parsed.variant,
            headers=parsed.headers,
            unmatched_headers=parsed.unmatched_headers,
        )

    def save(
        self,
        records: Sequence[ServiceRecord],
        preserve_headers: bool = False,
        *,
        patched_rows: int = 0,
    ) -> SaveResult:
        """Rewrite the whole workbook with ``records``.

        Raises:
            WriteFailure: every attempt failed; the file keeps its previous content
        """
        start_time = datetime.now(UTC)
        attempts = max(1, self.retry.attempts)
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                write_workbook(
                    self.path,
                    records,
                    self.schema,
                    sheet_name=self.sheet_name,
                    preserve_headers=preserve_headers,
                )
            except Exception as e:  # pandas/openpyxl raise a wide range of types while writing
                last_error = e
                logger.warning(
                    "write attempt %d/%d failed for %s: %s", attempt + 1, attempts, self.path.name, e
                )
                if attempt + 1 < attempts:
                    self._sleep(self.retry.delay_for(attempt))
                continue
            end_time = datetime.now(UTC)
            return SaveResult(
                file_name=self.path.name,
                updated_rows=len(records),
                patched_rows=patched_rows,
                attempts=attempt + 1,
                start_time=start_time,
                end_time=end_time,
                elapsed_seconds=(end_time - start_time).total_seconds(),
            )
        raise WriteFailure(
            f"failed to write {self.path.name} after {attempts} attempts: {last_error}"
        ) from last_error
