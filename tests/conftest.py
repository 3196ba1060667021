"""Shared fixtures: temp database and isolated config."""

import pytest

from mingzi import config as config_module
from mingzi.storage import open_naming_db


@pytest.fixture
def db(tmp_path):
    with open_naming_db(tmp_path / "mingzi.db") as conn:
        yield conn


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at tmp_path and clear cached config + env overrides."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_dir / "config.json")
    for var in (
        "GENERATION_MODEL",
        "GENERATION_TIMEOUT",
        "GENERATION_MAX_OUTPUT_TOKENS",
        "QUOTA_ANONYMOUS_DAILY",
        "DB_PATH",
    ):
        monkeypatch.delenv(var, raising=False)
    config_module.reset_config()
    yield config_dir / "config.json"
    config_module.reset_config()
