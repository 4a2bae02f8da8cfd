"""
Where automata-board looks for its files.

The board editor reads two things from disk besides the boards themselves:
config.json (board settings, tool directory override) and a tools/ folder of
transition tool files. Both sit in the "home" directory:

- a source checkout: the repository root, one level above automata_board/
- a bundled build: the folder holding the binary, so users can edit them
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """Home directory for config.json and tools/."""
    if getattr(sys, 'frozen', False):
        # Bundled: sys.executable is the editor binary itself
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent


def get_config_path() -> Path:
    """config.json with the board settings."""
    return get_app_dir() / "config.json"


def get_tools_dir() -> Path:
    """Default transition tool directory, scanned by ToolLibrary.load_dir."""
    return get_app_dir() / "tools"
