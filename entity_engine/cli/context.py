"""
Shared CLI wiring: settings, provider and snapshot store construction.
"""

import os
from typing import Optional

from ..core.config import Settings, build_provider, load_app_config
from ..metrics import start_metrics_server
from ..providers.base import Provider
from ..snapshot.store import SnapshotStore


def open_provider(data_dir: Optional[str] = None) -> Provider:
    """
    Build provider from environment settings.

    Args:
        data_dir: Overrides ENTITY_ENGINE_DATA_DIR (file provider only)
    """
    env = dict(os.environ)
    if data_dir:
        env["ENTITY_ENGINE_DATA_DIR"] = data_dir
    return build_provider(Settings.from_env(env))


def open_store(config_path: str, data_dir: Optional[str] = None) -> SnapshotStore:
    """Load AppConfig from config_path and wire a SnapshotStore around the provider."""
    settings = Settings.from_env()
    start_metrics_server(settings.metrics_enabled, settings.metrics_port)
    config = load_app_config(config_path)
    return SnapshotStore(config, open_provider(data_dir))
