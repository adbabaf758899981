from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from ownership_tracker.config.loader import ConfigError, _validate_config_schema

"""Unit tests for config validation error cases."""


def test_validate_config_schema_missing_schema_file():
    with patch("ownership_tracker.config.loader.SCHEMA_PATH", Path("/nonexistent/schema.json")):
        with pytest.raises(ConfigError) as e:
            _validate_config_schema({})
        assert "config schema not found" in str(e.value)


def test_validate_config_schema_invalid_json_schema():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        f.write("{ invalid json }")
        f.flush()
        temp_path = Path(f.name)

    try:
        with patch("ownership_tracker.config.loader.SCHEMA_PATH", temp_path):
            with pytest.raises(ConfigError) as e:
                _validate_config_schema({})
            assert "invalid schema file" in str(e.value)
    finally:
        temp_path.unlink()


def test_validate_config_schema_missing_required_keys():
    with pytest.raises(ConfigError) as e:
        _validate_config_schema({})
    assert "config validation failed" in str(e.value)
    assert "required property" in str(e.value)


def test_validate_config_schema_wrong_type():
    with pytest.raises(ConfigError) as e:
        _validate_config_schema({"storage": {"file_path": 123}})
    assert "config validation failed" in str(e.value)


def test_validate_config_schema_additional_properties():
    with pytest.raises(ConfigError) as e:
        _validate_config_schema({"storage": {"file_path": "x.xlsx"}, "database": {}})
    assert "config validation failed" in str(e.value)


def test_validate_config_schema_page_size_out_of_range():
    with pytest.raises(ConfigError):
        _validate_config_schema({"storage": {"file_path": "x.xlsx"}, "directory": {"page_size": 500}})


def test_validate_config_schema_zero_attempts_rejected():
    with pytest.raises(ConfigError):
        _validate_config_schema({"storage": {"file_path": "x.xlsx", "write_retry": {"attempts": 0}}})


def test_validate_config_schema_valid_config():
    _validate_config_schema(
        {
            "storage": {
                "file_path": "./data/service_data.xlsx",
                "sheet_name": "Service Data",
                "default_file_name": "service_data.xlsx",
                "schema_variant": "v2",
                "write_retry": {"attempts": 3, "backoff_seconds": 0.5},
            },
            "directory": {
                "base_url": "https://api.pagerduty.com",
                "api_token": None,
                "page_size": 100,
                "timeout_seconds": 10,
            },
            "logs_dir": "./logs",
        }
    )


def test_validate_config_schema_minimal_valid_config():
    _validate_config_schema({"storage": {"file_path": "x.xlsx"}})
