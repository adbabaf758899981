from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Result models for store writes and overall onboarding progress."""


@dataclass(frozen=True)
class SaveResult:
    """Outcome of one whole-file write."""
    file_name: str  # 書き込んだファイル名
    updated_rows: int  # rows written (whole file, not only patched ones)
    patched_rows: int  # rows touched by the patch-set, 0 for plain saves
    attempts: int  # write attempts used, 1 when the first write succeeded
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float


@dataclass(frozen=True)
class ProgressSnapshot:
    """Key-field progress across all records (dashboard metric).

    ``average_completion`` is the share of fully completed records in
    percent, reported as at least 1 while some but not all records are
    complete so that early progress is visible.
    """
    total: int
    completed: int
    in_progress: int
    not_started: int
    average_completion: int
