from __future__ import annotations

from ..models.save_result import ProgressSnapshot, SaveResult

"""SUMMARY line rendering for completed saves.

Format (single line, fixed key order):
SUMMARY file={name} rows={rows} patched={patched} attempts={attempts}
completed={completed}/{total} progress={pct}% elapsed_sec={elapsed}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Render seconds without trailing zeros or scientific notation."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return str(seconds)


def render_summary_line(result: SaveResult, progress: ProgressSnapshot) -> str:
    """Render a SUMMARY line from a save result and the post-save progress.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = SaveResult("service_data.xlsx", 3, 3, 1, start, end, 2.0)
        >>> render_summary_line(result, ProgressSnapshot(3, 1, 2, 0, 33))
        'SUMMARY file=service_data.xlsx rows=3 patched=3 attempts=1 completed=1/3 progress=33% elapsed_sec=2'
    """
    return (
        f"SUMMARY file={result.file_name} "
        f"rows={result.updated_rows} "
        f"patched={result.patched_rows} "
        f"attempts={result.attempts} "
        f"completed={progress.completed}/{progress.total} "
        f"progress={progress.average_completion}% "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
