import json
import sys

import pytest

from automata_board.config import (
    BOARD_ENV_VARS,
    get_board_config,
    get_tools_path,
    load_config,
    save_config,
    set_board_config,
)
from automata_board.graph import BoardConfig
from automata_board.paths import get_app_dir, get_config_path, get_tools_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in BOARD_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


def test_defaults_without_config_file(config_path):
    assert load_config(config_path) == {}
    assert get_board_config(config_path) == BoardConfig()


def test_broken_config_file_is_ignored(config_path):
    config_path.write_text("{oops", encoding="utf-8")
    assert load_config(config_path) == {}


def test_board_section_is_read(config_path):
    save_config({"board": {"gridSize": 32, "stateRadius": 0.4}}, config_path)
    config = get_board_config(config_path)
    assert config.grid_size == 32
    assert config.state_radius == 0.4
    assert config.max_scale == BoardConfig().max_scale


def test_environment_overrides_config_file(config_path, monkeypatch):
    save_config({"board": {"stateRadius": 0.4}}, config_path)
    monkeypatch.setenv("AUTOMATA_STATE_RADIUS", "0.3")
    monkeypatch.setenv("AUTOMATA_MAX_SCALE", "4")
    config = get_board_config(config_path)
    assert config.state_radius == 0.3
    assert config.max_scale == 4.0


def test_non_numeric_environment_value_is_ignored(config_path, monkeypatch):
    monkeypatch.setenv("AUTOMATA_GRID_SIZE", "big")
    assert get_board_config(config_path).grid_size == BoardConfig().grid_size


@pytest.mark.parametrize("board", [
    {"stateRadius": 0},
    {"minScale": -1},
    {"minScale": 5, "maxScale": 2},
])
def test_invalid_board_settings_fall_back_to_defaults(config_path, board):
    save_config({"board": board}, config_path)
    assert get_board_config(config_path) == BoardConfig()


def test_set_board_config_keeps_other_keys(config_path):
    save_config({"tools_dir": "my_tools"}, config_path)
    set_board_config(BoardConfig(grid_size=20), config_path)

    with open(config_path, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["tools_dir"] == "my_tools"
    assert saved["board"]["gridSize"] == 20
    assert get_board_config(config_path).grid_size == 20


def test_tools_path(config_path, tmp_path):
    assert get_tools_path(config_path) == get_tools_dir()
    save_config({"tools_dir": str(tmp_path / "tools")}, config_path)
    assert get_tools_path(config_path) == tmp_path / "tools"


def test_app_dir_is_repository_root_from_source():
    assert (get_app_dir() / "automata_board" / "paths.py").is_file()
    assert get_config_path() == get_app_dir() / "config.json"
    assert get_tools_dir() == get_app_dir() / "tools"


def test_app_dir_next_to_bundled_binary(tmp_path, monkeypatch):
    binary = tmp_path / "dist" / "automata-board"
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(binary))
    assert get_app_dir() == (tmp_path / "dist").resolve()
    assert get_tools_dir() == (tmp_path / "dist").resolve() / "tools"
