"""
Configuration management for automata-board.

Handles persistent configuration including:
- Board settings (grid size, default state radius, zoom bounds)
- Location of the transition tool directory

Config is stored in config.json next to the executable/project root.
Environment variables (optionally from a .env file) take priority.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from automata_board.graph import BoardConfig
from automata_board.paths import get_config_path, get_tools_dir

logger = logging.getLogger(__name__)

# Environment variable -> BoardConfig JSON key
BOARD_ENV_VARS = {
    "AUTOMATA_GRID_SIZE": "gridSize",
    "AUTOMATA_STATE_RADIUS": "stateRadius",
    "AUTOMATA_MIN_SCALE": "minScale",
    "AUTOMATA_MAX_SCALE": "maxScale",
}


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _env_overrides() -> dict:
    overrides = {}
    for env_name, key in BOARD_ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            overrides[key] = float(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_name}={raw!r}: not a number")
    return overrides


def get_board_config(config_path: Optional[Path] = None) -> BoardConfig:
    """
    Resolve the board configuration.

    Priority:
    1. Environment variables (AUTOMATA_GRID_SIZE, AUTOMATA_STATE_RADIUS, ...)
    2. The "board" section of config.json
    3. Built-in defaults
    """
    load_dotenv()
    board = dict(load_config(config_path).get("board") or {})
    board.update(_env_overrides())
    config = BoardConfig.from_dict(board)
    if config.state_radius <= 0 or config.min_scale <= 0 or config.min_scale > config.max_scale:
        logger.warning(f"Invalid board configuration {board}, falling back to defaults")
        return BoardConfig()
    return config


def set_board_config(board: BoardConfig, config_path: Optional[Path] = None) -> None:
    """Save the board settings to config.json, keeping other keys."""
    config = load_config(config_path)
    config["board"] = board.to_dict()
    save_config(config, config_path)


def get_tools_path(config_path: Optional[Path] = None) -> Path:
    """Tool directory: config.json "tools_dir" if set, else tools/ next to the app."""
    tools_dir = load_config(config_path).get("tools_dir")
    return Path(tools_dir) if tools_dir else get_tools_dir()
