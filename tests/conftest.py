# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from ownership_tracker.models.directory import Service, Team, User
from ownership_tracker.services.directory import DirectoryNotFound


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """storage:
  file_path: ./data/service_data.xlsx
  schema_variant: auto
  write_retry:
    attempts: 2
    backoff_seconds: 0
directory:
  base_url: https://directory.example.com/
  api_token: yaml-token
  page_size: 50
logs_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "tracker.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def build_workbook(path: Path, rows: list[list[Any]], sheet_title: str = "Sheet1") -> Path:
    """Write raw rows (first row = headers) with openpyxl."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for row in rows:
        ws.append(row)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path


V2_SAMPLE_ROWS: list[list[Any]] = [
    ["MP Service Name", "MP CMDB ID", "PD Tech SVC", "PD Team Name", "Prime Manager"],
    ["checkout-api", "CI001", "", "", "Alice"],
    ["payments-api", "CI002", "payments", "Payments", ""],
    ["search-api", 1003, "", "", ""],
]


@pytest.fixture()
def workbook_factory(tmp_path: Path):
    def _make(rows: list[list[Any]] | None = None, name: str = "service_data.xlsx") -> Path:
        return build_workbook(tmp_path / name, rows if rows is not None else V2_SAMPLE_ROWS)
    return _make


class FakeDirectoryGateway:
    """In-memory directory; ``fail_with`` makes every list call raise."""

    def __init__(
        self,
        teams: list[Team] | None = None,
        services: list[Service] | None = None,
        users: list[User] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.teams = teams or []
        self.services = services or []
        self.users = users or []
        self.fail_with = fail_with
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def get_all_teams(self) -> list[Team]:
        self._check()
        return list(self.teams)

    def get_all_services(self) -> list[Service]:
        self._check()
        return list(self.services)

    def get_all_users(self) -> list[User]:
        self._check()
        return list(self.users)

    def get_service(self, service_id: str) -> Service:
        for s in self.services:
            if s.id == service_id:
                return s
        raise DirectoryNotFound(f"service {service_id} not found")

    def update_service(self, service_id: str, patch: dict[str, Any]) -> Service:
        self.updates.append((service_id, patch))
        return self.get_service(service_id)


@pytest.fixture()
def directory_gateway() -> FakeDirectoryGateway:
    platform = Team(id="T1", name="Platform")
    payments = Team(id="T2", name="Payments")
    return FakeDirectoryGateway(
        teams=[platform, payments],
        services=[
            Service(id="S1", name="checkout", status="active", teams=(Team(id="T2", name="Payments", summary="Payments"),)),
            Service(id="S2", name="orphan-svc", status="active"),
        ],
        users=[User(id="U1", name="Alice", email="alice@example.com")],
    )


@pytest.fixture()
def gateway_factory():
    return FakeDirectoryGateway


@pytest.fixture(autouse=True)
def _propagate_package_logs(monkeypatch):
    # setup_logging() turns propagation off; caplog listens on the root logger
    monkeypatch.setattr(logging.getLogger("ownership_tracker"), "propagate", True)
