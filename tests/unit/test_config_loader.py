from __future__ import annotations
import pytest
from pathlib import Path
from ownership_tracker.config.loader import TOKEN_ENV_VAR, load_config, ConfigError
from ownership_tracker.models.schema import SchemaVariant


@pytest.fixture(autouse=True)
def _clear_token(monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.storage.file_path == Path("./data/service_data.xlsx")
    assert cfg.storage.sheet_name == "Service Data"
    assert cfg.storage.schema_variant is None  # auto
    assert cfg.storage.write_retry.attempts == 2
    assert cfg.storage.write_retry.backoff_seconds == 0
    assert cfg.directory.base_url == "https://directory.example.com"
    assert cfg.directory.page_size == 50
    assert cfg.logs_dir == Path("./logs")


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError) as e:
        load_config(missing)
    assert "config file not found" in str(e.value)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("storage: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("  file_path: ./data/service_data.xlsx\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_rejects_unknown_variant(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("schema_variant: auto", "schema_variant: v3")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_explicit_variant(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("schema_variant: auto", "schema_variant: legacy")
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.storage.schema_variant is SchemaVariant.LEGACY


def test_token_from_yaml_when_env_missing(write_config: Path):
    cfg = load_config(write_config, env_file=None)
    assert cfg.directory.api_token == "yaml-token"


def test_env_token_wins_over_yaml(write_config: Path, monkeypatch):
    monkeypatch.setenv(TOKEN_ENV_VAR, "env-token")
    cfg = load_config(write_config, env_file=None)
    assert cfg.directory.api_token == "env-token"


def test_dotenv_file_overrides_environment(write_config: Path, temp_workdir: Path, monkeypatch):
    monkeypatch.setenv(TOKEN_ENV_VAR, "env-token")
    env_file = temp_workdir / ".env"
    env_file.write_text(f"{TOKEN_ENV_VAR}=dotenv-token\n", encoding="utf-8")
    cfg = load_config(write_config, env_file=env_file)
    assert cfg.directory.api_token == "dotenv-token"


def test_defaults_when_sections_omitted(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "tracker.yml"
    cfg_path.write_text("storage:\n  file_path: ./data/x.xlsx\n", encoding="utf-8")
    cfg = load_config(cfg_path, env_file=None)
    assert cfg.directory.base_url == "https://api.pagerduty.com"
    assert cfg.directory.api_token is None
    assert cfg.storage.write_retry.attempts == 3
    assert cfg.storage.default_file_name == "service_data.xlsx"
