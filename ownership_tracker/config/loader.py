from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import load_dotenv
from jsonschema.exceptions import ValidationError

from ..models.config_models import DirectoryConfig, RetryConfig, StorageConfig, TrackerConfig
from ..models.schema import SchemaVariant

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/tracker.yml``)
- Validate against the bundled JSON schema
- Apply defaults
- Resolve the directory API token: ``.env`` / process environment
  (``DIRECTORY_API_TOKEN``) first, YAML ``directory.api_token`` as fallback
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/tracker.yml")
TOKEN_ENV_VAR = "DIRECTORY_API_TOKEN"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the
            config data fails validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _load_env_file(path: Path | None) -> None:
    """Load ``.env`` so that its values override the process environment."""
    if path is not None and path.exists():
        load_dotenv(dotenv_path=path, override=True)


def _parse_variant(raw: str | None) -> SchemaVariant | None:
    if raw is None or raw == "auto":
        return None
    return SchemaVariant(raw)


def load_config(path: Path = DEFAULT_CONFIG_PATH, env_file: Path | None = Path(".env")) -> TrackerConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)
    _load_env_file(env_file)

    storage_raw = data["storage"]
    retry_raw = storage_raw.get("write_retry", {})
    storage = StorageConfig(
        file_path=Path(storage_raw["file_path"]),
        sheet_name=storage_raw.get("sheet_name", "Service Data"),
        default_file_name=storage_raw.get("default_file_name", "service_data.xlsx"),
        schema_variant=_parse_variant(storage_raw.get("schema_variant")),
        write_retry=RetryConfig(
            attempts=retry_raw.get("attempts", 3),
            backoff_seconds=float(retry_raw.get("backoff_seconds", 0.5)),
        ),
    )

    dir_raw = data.get("directory", {})
    directory = DirectoryConfig(
        base_url=dir_raw.get("base_url", "https://api.pagerduty.com").rstrip("/"),
        # 環境変数 (.env 含む) を YAML より優先
        api_token=os.getenv(TOKEN_ENV_VAR) or dir_raw.get("api_token"),
        page_size=dir_raw.get("page_size", 100),
        timeout_seconds=float(dir_raw.get("timeout_seconds", 30)),
    )
    return TrackerConfig(
        storage=storage,
        directory=directory,
        logs_dir=Path(data.get("logs_dir", "./logs")),
    )
