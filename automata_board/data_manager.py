import json
import logging
from pathlib import Path
from typing import Dict, List, Tuple

from automata_board.graph import AutomataGraph, State, Transition, dangling_transitions

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("states", "transitions")


class GraphLoadError(ValueError):
    """A board file could not be loaded. The current graph must be left untouched."""


def dump_graph(graph: AutomataGraph) -> str:
    """Serialise a graph to the board file format."""
    return json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)


def parse_graph(text: str) -> Tuple[Dict[str, State], Dict[str, Transition]]:
    """
    Parse a board file.

    Everything is validated before anything is returned, so a caller that
    only applies the result on success never sees partial data.

    Raises:
        GraphLoadError: on invalid JSON, a missing top-level key, a malformed
            record, a transition pointing at an unknown state, or a merge
            pointing at an unknown or itself-merged state
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GraphLoadError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GraphLoadError("Board file must be a JSON object")
    for key in REQUIRED_KEYS:
        if key not in data:
            raise GraphLoadError(f"Board file is missing the '{key}' key")
        if not isinstance(data[key], dict):
            raise GraphLoadError(f"'{key}' must be an object keyed by id")

    try:
        states = {k: State.from_dict(v, k) for k, v in data["states"].items()}
        transitions = {k: Transition.from_dict(v, k) for k, v in data["transitions"].items()}
    except ValueError as e:
        raise GraphLoadError(str(e)) from e

    dangling = dangling_transitions(states, transitions)
    if dangling:
        raise GraphLoadError(f"Transitions reference unknown states: {', '.join(dangling)}")

    for sid, state in states.items():
        if state.merged is None:
            continue
        target = states.get(state.merged)
        if target is None or target.merged is not None or state.merged == sid:
            raise GraphLoadError(f"State {sid!r} is merged into an invalid target {state.merged!r}")

    return states, transitions


class DataManager:
    """
    Saves and loads boards as JSON files in a directory.

    Structure:
    - {boards_dir}/{name}.json: {"states": {...}, "transitions": {...}}

    Only the working graph is ever written; history stays in memory.
    """

    def __init__(self, boards_dir: str = "boards"):
        self.boards_dir = Path(boards_dir)
        self.boards_dir.mkdir(parents=True, exist_ok=True)

    def _board_path(self, name: str) -> Path:
        return self.boards_dir / f"{name}.json"

    def list_boards(self) -> List[str]:
        """Return board names based on files."""
        return sorted(f.stem for f in self.boards_dir.glob("*.json"))

    def save_board(self, name: str, graph: AutomataGraph) -> Path:
        path = self._board_path(name)
        save_graph(path, graph)
        return path

    def load_board(self, name: str) -> Tuple[Dict[str, State], Dict[str, Transition]]:
        return load_graph(self._board_path(name))


def save_graph(path: Path, graph: AutomataGraph) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(dump_graph(graph))
    logger.info(f"Saved {len(graph.states)} states, {len(graph.transitions)} transitions to {path}")


def load_graph(path: Path) -> Tuple[Dict[str, State], Dict[str, Transition]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise GraphLoadError(f"Cannot read {path}: {e}") from e
    try:
        return parse_graph(text)
    except GraphLoadError as e:
        logger.warning(f"Failed to load board {path}: {e}")
        raise
