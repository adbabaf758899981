from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .schema import SchemaVariant

"""Config dataclasses for the service-ownership tracker.

Built by ``ownership_tracker.config.loader.load_config`` and passed explicitly
into the record store and directory gateway constructors. Nothing in the
package reads credentials from the environment on its own.
"""


@dataclass(frozen=True)
class RetryConfig:
    """Whole-file write retry policy.

    Attempt ``n`` (0-based) waits ``backoff_seconds * 2**n`` before the next
    attempt. ``attempts=1`` disables retrying.
    """
    attempts: int = 3
    backoff_seconds: float = 0.5

    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** attempt)


@dataclass(frozen=True)
class StorageConfig:
    """Backing workbook location and shape."""
    file_path: Path
    sheet_name: str = "Service Data"
    default_file_name: str = "service_data.xlsx"
    schema_variant: SchemaVariant | None = None  # None = detect from headers
    write_retry: RetryConfig = field(default_factory=RetryConfig)


@dataclass(frozen=True)
class DirectoryConfig:
    """Directory service connection settings.

    ``api_token`` is already resolved (.env / environment over YAML).
    """
    base_url: str = "https://api.pagerduty.com"
    api_token: str | None = None
    page_size: int = 100
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class TrackerConfig:
    """Root configuration object."""
    storage: StorageConfig
    directory: DirectoryConfig
    logs_dir: Path = Path("./logs")
