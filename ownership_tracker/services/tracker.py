from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import requests

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import setup_logging
from ..models.config_models import TrackerConfig
from ..models.workflow import OnboardingMode
from .directory import DirectoryGateway, HttpDirectoryGateway
from .onboarding import OnboardingSession
from .record_store import RecordStore
from .storage_api import StorageEndpoint

"""Wiring: one config file -> store, directory gateway, error log and storage endpoint."""

__all__ = [
    "Tracker",
    "build_tracker",
]


@dataclass
class Tracker:
    config: TrackerConfig
    store: RecordStore
    gateway: DirectoryGateway
    error_log: ErrorLogBuffer
    endpoint: StorageEndpoint

    def start_onboarding(
        self,
        record_ids: Sequence[str],
        mode: OnboardingMode = OnboardingMode.SINGLE,
    ) -> OnboardingSession:
        return OnboardingSession.start(self.gateway, self.store, record_ids, mode, error_log=self.error_log)


def build_tracker(
    config_path: Path = DEFAULT_CONFIG_PATH,
    env_file: Path | None = Path(".env"),
    *,
    session: requests.Session | None = None,
    level: int = logging.INFO,
) -> Tracker:
    """Load the config and build every component from it.

    Raises:
        ConfigError: config missing or invalid (logged before re-raising)
    """
    logger = setup_logging(level)
    try:
        cfg = load_config(config_path, env_file)
    except ConfigError as e:
        logger.error(f"config: {e}")
        raise

    store = RecordStore.from_config(cfg.storage)
    error_log = ErrorLogBuffer(cfg.logs_dir)
    logger.info(f"workbook: {store.path} (sheet '{cfg.storage.sheet_name}')")
    return Tracker(
        config=cfg,
        store=store,
        gateway=HttpDirectoryGateway(cfg.directory, session=session),
        error_log=error_log,
        endpoint=StorageEndpoint(store, error_log, default_file_name=cfg.storage.default_file_name),
    )
