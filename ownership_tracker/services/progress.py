from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

Used while draining paginated directory listings. The number of pages is not
known up front (the API only reports ``more``), so ``total`` is optional and
the bar then shows a running count.

In non-TTY environments (CI, log capture) no bar is created at all to avoid
ANSI control sequence spam.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Page counter backed by a single tqdm bar."""

    def __init__(
        self,
        total: int | None = None,
        *,
        description: str = "Fetching",
        unit: str = "page",
    ) -> None:
        """Initialize progress tracker.

        Args:
            total: Number of steps if known, ``None`` for an open-ended count
            description: Description for the progress bar
            unit: Unit label shown next to the count
        """
        self.total = total
        self.description = description
        self.completed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                disable=False,
                leave=False,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, steps: int = 1) -> None:
        self.completed += steps
        if self.enabled and self.pbar is not None:
            self.pbar.update(steps)

    def set_postfix(self, **kwargs: Any) -> None:
        """Set postfix information (e.g. items fetched so far) on the bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
