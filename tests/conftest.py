"""
Shared fixtures for notifier tests.

Every test runs with HOME pointed at a temp directory so path resolution
never touches the real user profile.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from reboot_notifier.persistence.action_log import ActionLog
from reboot_notifier.persistence.config_store import ConfigStore


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch):
    """Point HOME at a temp dir and clear notifier env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in (
        "SECOPS_REBOOT_LOG_DIR",
        "REBOOT_COUNTDOWN_SECONDS",
        "REBOOT_DELAY_OPTIONS",
        "REBOOT_MAX_TOTAL_DELAY",
        "REBOOT_CONFIG_FILE",
        "REBOOT_STATE_FILE",
        "REBOOT_HISTORY_FILE",
    ):
        monkeypatch.delenv(key, raising=False)
    return home


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Path to the config document inside the temp dir."""
    return tmp_path / "config" / "SecOpsNotifierConfig.json"


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "reboot_state.json"


@pytest.fixture
def history_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "reboot_action_history.log"


@pytest.fixture
def make_store(config_file: Path):
    """Factory: write an initial document (or raw text) and open a store on it."""
    stores = []

    def _make(initial=None, raw: str | None = None) -> ConfigStore:
        if raw is not None:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            config_file.write_text(raw, encoding="utf-8")
        elif initial is not None:
            write_json(config_file, initial)
        store = ConfigStore(config_file)
        stores.append(store)
        return store

    yield _make

    for store in stores:
        store.close()


@pytest.fixture
def action_log(state_file: Path, history_file: Path):
    log = ActionLog(state_file, history_file)
    yield log
    log.close()


def write_json(path: Path, data) -> None:
    """Helper to write a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def read_lines(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]
