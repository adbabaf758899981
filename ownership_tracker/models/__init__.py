"""Domain models for the service-ownership tracker.

Records and the schema registry describe the workbook; directory entities
mirror the incident directory; workflow models hold onboarding answers.
"""

from .config_models import DirectoryConfig, RetryConfig, StorageConfig, TrackerConfig
from .directory import Service, Team, User
from .save_result import ProgressSnapshot, SaveResult
from .schema import SchemaDefinition, SchemaVariant, get_schema
from .service_record import ServiceRecord

__all__ = [
    # Configuration models
    "DirectoryConfig",
    "RetryConfig",
    "StorageConfig",
    "TrackerConfig",
    # Workbook models
    "SchemaDefinition",
    "SchemaVariant",
    "ServiceRecord",
    "get_schema",
    # Directory models
    "Service",
    "Team",
    "User",
    # Results
    "ProgressSnapshot",
    "SaveResult",
]
