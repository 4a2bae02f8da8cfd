"""
Editor Session - single owner of interaction state.

The session turns user intents (clicks, drags, key presses, tool use, file
load) into GraphStore mutations and issues the commit signal afterwards.
It holds what the UI would otherwise keep in scattered toggles:

- the drag in progress and where it started
- whether a transition tool is in use and the state ids clicked so far
- the tool library
- a change listener for the renderer

The key rule is that a drag commits at most once: intermediate positions are
layout only, and the release commits only if the state ended up elsewhere.
Merges are the exception and commit the moment they are proposed.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from automata_board.config import get_board_config, get_tools_path
from automata_board.data_manager import GraphLoadError, dump_graph, load_graph, parse_graph, save_graph
from automata_board.graph import AutomataGraph, BoardConfig, Position, State, Transition
from automata_board.tikz import REARRANGE, LabelingOption, get_tikz_from_automata
from automata_board.edit.history import HistoryManager
from automata_board.edit.regularizer import MergeProposed, RegularizerResult
from automata_board.edit.store import GraphStore
from automata_board.edit.tools import ToolLibrary, TransitionTool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditState:
    """Immutable snapshot of the interaction state."""
    dragging_state_id: Optional[str] = None
    drag_origin: Optional[Position] = None
    using_tool: bool = False
    tool_params: Tuple[str, ...] = ()


class EditorSession:
    """Implements the intent surface on top of GraphStore + HistoryManager."""

    def __init__(self, config: Optional[BoardConfig] = None, tools: Optional[ToolLibrary] = None):
        self.store = GraphStore(config or BoardConfig())
        self.history = HistoryManager(self.store)
        self.tools = tools if tools is not None else ToolLibrary()
        self._state = EditState()
        self._on_change: Optional[Callable[["EditorSession"], None]] = None

    @classmethod
    def from_config(cls, config_path: Optional[Path] = None) -> "EditorSession":
        """Session using config.json / environment board settings and the tool directory."""
        tools = ToolLibrary()
        for error in tools.load_dir(get_tools_path(config_path)):
            logger.warning(f"Tool not loaded: {error}")
        return cls(config=get_board_config(config_path), tools=tools)

    # --- Read side for the renderer ---

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def graph(self) -> AutomataGraph:
        return self.store.to_graph()

    @property
    def selected(self) -> Optional[str]:
        return self.store.selected

    def set_on_change(self, callback: Callable[["EditorSession"], None]):
        self._on_change = callback

    def _notify_change(self):
        if self._on_change:
            self._on_change(self)

    def _flush(self) -> bool:
        """The commit signal: snapshot staged changes, then tell the renderer."""
        committed = self.history.commit_pending()
        self._notify_change()
        return committed

    def _reset_interaction(self):
        self._state = EditState()

    # --- States ---

    def create_state_at(self, x: float, y: float) -> Optional[str]:
        self._release_drag()
        state_id = self.store.create_state(x, y)
        self._flush()
        return state_id

    def toggle_accepting(self, state_id: str) -> bool:
        self._release_drag()
        changed = self.store.toggle_accepting(state_id)
        self._flush()
        return changed

    def downgrade_to_dummy(self, state_id: str) -> bool:
        self._release_drag()
        changed = self.store.downgrade_to_dummy(state_id)
        self._flush()
        return changed

    def delete_state(self, state_id: str) -> bool:
        self._release_drag()
        changed = self.store.delete_state(state_id)
        self._flush()
        return changed

    def edit_state(self, state_id: str, new_state: State) -> bool:
        self._release_drag()
        changed = self.store.edit_state(state_id, new_state)
        self._flush()
        return changed

    # --- Dragging ---

    def begin_drag(self, state_id: str) -> bool:
        if not self.store.is_live(state_id):
            logger.info(f"Cannot drag {state_id!r}: not on the board")
            return False
        origin = self.store.states[state_id].position
        self._state = replace(self._state, dragging_state_id=state_id, drag_origin=origin)
        return True

    def drag_to(self, x: float, y: float) -> Optional[RegularizerResult]:
        """
        Move the dragged state towards (x, y).

        Plain moves are not committed. A merge proposal is applied and
        committed immediately, which also ends the drag since the dragged
        state no longer exists afterwards.
        """
        state_id = self._state.dragging_state_id
        if state_id is None:
            return None
        result = self.store.drag_state(state_id, x, y)
        if isinstance(result, MergeProposed) and self.store.is_dirty:
            self._reset_interaction_drag()
            self._flush()
        else:
            self._notify_change()
        return result

    def end_drag(self) -> bool:
        """Release the dragged state. Returns True if the move was committed."""
        state_id, origin = self._state.dragging_state_id, self._state.drag_origin
        self._reset_interaction_drag()
        if state_id is None or not self.store.is_live(state_id):
            return False
        state = self.store.states[state_id]
        if state.position == origin:
            return False
        self.store.stage_commit(f"move state {state.label}")
        return self._flush()

    def _reset_interaction_drag(self):
        self._state = replace(self._state, dragging_state_id=None, drag_origin=None)

    def _release_drag(self) -> None:
        """Commit an unfinished drag as its own move before another intent commits."""
        if self._state.dragging_state_id is not None:
            self.end_drag()

    # --- Transitions ---

    def create_transition(self, from_id: str, to_id: str, label: str = "") -> Optional[str]:
        self._release_drag()
        transition_id = self.store.create_transition(from_id, to_id, label)
        self._flush()
        return transition_id

    def delete_transition(self, transition_id: str) -> bool:
        self._release_drag()
        changed = self.store.delete_transition(transition_id)
        self._flush()
        return changed

    def edit_transition(self, transition_id: str, new_transition: Transition) -> bool:
        self._release_drag()
        changed = self.store.edit_transition(transition_id, new_transition)
        self._flush()
        return changed

    def select(self, element_id: Optional[str]) -> bool:
        changed = self.store.select(element_id)
        self._notify_change()
        return changed

    # --- History ---

    def undo(self) -> bool:
        self._reset_interaction_drag()
        moved = self.history.undo()
        self._notify_change()
        return moved

    def redo(self) -> bool:
        self._reset_interaction_drag()
        moved = self.history.redo()
        self._notify_change()
        return moved

    def jump_to(self, index: int) -> bool:
        self._reset_interaction_drag()
        moved = self.history.jump_to(index)
        self._notify_change()
        return moved

    # --- Transition tools ---

    def import_tool(self, text: str) -> TransitionTool:
        """Raises ToolImportError for the UI to show; the library is unchanged then."""
        return self.tools.import_tool(text)

    def import_tools(self, text: str) -> List[TransitionTool]:
        return self.tools.import_tools(text)

    def begin_tool_use(self, index: Optional[int] = None) -> bool:
        if index is not None and not self.tools.select(index):
            return False
        if self.tools.current is None:
            logger.info("No transition tool loaded")
            return False
        self._state = replace(self._state, using_tool=True, tool_params=())
        return True

    def end_tool_use(self):
        self._state = replace(self._state, using_tool=False, tool_params=())

    def click_for_tool(self, state_id: str) -> Optional[List[str]]:
        """
        Add a clicked state to the tool parameters.

        Once the list holds as many ids as the tool has slots, the tool is
        applied and the list is cleared, whatever the outcome.

        Returns:
            Created transition ids when the tool fired, otherwise None
        """
        if not self._state.using_tool:
            return None
        if not self.store.is_live(state_id):
            logger.info(f"Ignoring tool click on {state_id!r}: not on the board")
            return None
        params = self._state.tool_params + (state_id,)
        self._state = replace(self._state, tool_params=params)
        tool = self.tools.current
        if tool is not None and len(params) == tool.state_count:
            return self.apply_tool_now()
        return None

    def apply_tool_now(self) -> List[str]:
        tool = self.tools.current
        params = list(self._state.tool_params)
        self._state = replace(self._state, tool_params=())
        if tool is None:
            logger.info("No transition tool selected")
            return []
        self._release_drag()
        created = self.store.apply_tool(tool, params)
        self._flush()
        return created

    # --- Files ---

    def save(self, path: Path) -> None:
        """Write the working graph (not the history) to ``path``."""
        save_graph(path, self.store.to_graph())

    def dumps(self) -> str:
        return dump_graph(self.store.to_graph())

    def load(self, path: Path) -> None:
        """
        Load a board file and commit it as one history entry.

        Raises:
            GraphLoadError: the graph is left exactly as it was
        """
        states, transitions = load_graph(path)
        self._apply_loaded(states, transitions, f"load {Path(path).name}")

    def loads(self, text: str) -> None:
        try:
            states, transitions = parse_graph(text)
        except GraphLoadError as e:
            logger.warning(f"Board not loaded: {e}")
            raise
        self._apply_loaded(states, transitions, "load board")

    def _apply_loaded(self, states, transitions, log: str) -> None:
        self._reset_interaction()
        self.store.replace_graph(states, transitions, log)
        self._flush()

    def export_tikz(self, option: LabelingOption = REARRANGE, scale: float = 1) -> str:
        graph = self.store.to_graph()
        return get_tikz_from_automata(graph.states, graph.transitions, option, scale)
