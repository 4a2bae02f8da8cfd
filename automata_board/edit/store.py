"""
Graph Store - the working (uncommitted) graph and every mutation on it.

The store is the only place the working graph is changed. Mutations that
alter the automaton stage a commit by recording a log message; the
HistoryManager later snapshots the working graph, running
``resolve_merges`` first. Moves that only change layout stage nothing.

Illegal edits are rejected with a falsy return value and a log line. They
never raise and never stage a commit.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from automata_board.graph import (
    AutomataGraph,
    BoardConfig,
    Position,
    State,
    Transition,
    get_unique_id,
    make_state,
)
from automata_board.edit.regularizer import (
    MergeProposed,
    Placed,
    RegularizerResult,
    regularize,
)
from automata_board.edit import tools as tool_engine
from automata_board.edit.tools import TransitionTool

logger = logging.getLogger(__name__)


def resolve_merges(states: Mapping[str, State], transitions: Mapping[str, Transition],
                   selected: Optional[str] = None
                   ) -> Tuple[Dict[str, State], Dict[str, Transition], Optional[str]]:
    """
    Drop merged-away states and re-point their transitions at the survivor.

    Resolution is single level: every endpoint is looked up once in the
    ``merged`` map as it stands now. If a merged state's target is itself
    merged in the same pass, the endpoint lands on that intermediate target
    and is only carried further by a later commit.

    Returns:
        (survivor states, rewritten transitions, selection)
    """
    redirect = {sid: s.merged for sid, s in states.items() if s.merged is not None}

    survivors = {
        sid: replace(s, merged_by=False) if s.merged_by else s
        for sid, s in states.items() if s.merged is None
    }

    rewritten = {}
    for tid, t in transitions.items():
        if t.from_id in redirect or t.to_id in redirect:
            t = replace(t, from_id=redirect.get(t.from_id, t.from_id),
                        to_id=redirect.get(t.to_id, t.to_id))
        rewritten[tid] = t

    if selected in redirect:
        selected = redirect[selected]

    return survivors, rewritten, selected


class GraphStore:
    """
    Owns the working graph: states, transitions, board config and selection.

    Each mutating method returns something falsy when the edit was rejected.
    """

    def __init__(self, config: Optional[BoardConfig] = None):
        self.config: BoardConfig = config or BoardConfig()
        self.states: Dict[str, State] = {}
        self.transitions: Dict[str, Transition] = {}
        self.selected: Optional[str] = None
        self._pending_log: Optional[str] = None

    # --- Commit staging ---

    @property
    def is_dirty(self) -> bool:
        return self._pending_log is not None

    @property
    def pending_log(self) -> Optional[str]:
        return self._pending_log

    def stage_commit(self, log: str) -> None:
        """Mark the working graph dirty; the latest message wins."""
        self._pending_log = log

    def clear_pending(self) -> None:
        self._pending_log = None

    # --- Snapshots ---

    def load_snapshot(self, snapshot: AutomataGraph) -> None:
        """Replace the working graph with a copy of ``snapshot``."""
        self.states = dict(snapshot.states)
        self.transitions = dict(snapshot.transitions)
        self.config = snapshot.config
        if self.selected is not None and not self._exists(self.selected):
            self.selected = None
        self._pending_log = None

    def build_snapshot(self, log: Optional[str] = None) -> AutomataGraph:
        """Run the merge-commit rewrite and freeze the result."""
        states, transitions, self.selected = resolve_merges(self.states, self.transitions, self.selected)
        return AutomataGraph.freeze(states, transitions, self.config, log)

    def to_graph(self) -> AutomataGraph:
        """The working graph as-is (no rewrite), e.g. for saving or export."""
        return AutomataGraph.freeze(self.states, self.transitions, self.config)

    # --- Queries ---

    def is_live(self, state_id: Optional[str]) -> bool:
        state = self.states.get(state_id)
        return state is not None and state.is_live

    def live_states(self) -> Dict[str, State]:
        return {sid: s for sid, s in self.states.items() if s.is_live}

    def _exists(self, element_id: str) -> bool:
        return self.is_live(element_id) or element_id in self.transitions

    def _live_state(self, state_id: str, action: str) -> Optional[State]:
        state = self.states.get(state_id)
        if state is None or not state.is_live:
            logger.info(f"Cannot {action}: no live state {state_id!r}")
            return None
        return state

    # --- Selection ---

    def select(self, element_id: Optional[str]) -> bool:
        """Select a live state or a transition; None clears the selection."""
        if element_id is not None and not self._exists(element_id):
            logger.info(f"Cannot select {element_id!r}: not on the board")
            return False
        self.selected = element_id
        return True

    # --- State mutations ---

    def create_state(self, x: float, y: float) -> Optional[str]:
        """
        Create a state at the lattice point nearest to (x, y).

        Returns:
            The new state id, or None when the cell is occupied
        """
        result = regularize(None, self.states, x, y)
        if not isinstance(result, Placed):
            logger.debug(f"State creation at ({x}, {y}) rejected: {result.reason}")
            return None

        state_id = get_unique_id(self.states)
        state = make_state(state_id, result.position, self.config.state_radius)
        self.states[state_id] = state
        self.stage_commit(f"create state {state.label}")
        return state_id

    def drag_state(self, state_id: str, x: float, y: float) -> Optional[RegularizerResult]:
        """Regularize a drag step for ``state_id`` and apply the outcome."""
        state = self._live_state(state_id, "drag")
        if state is None:
            return None
        result = regularize(state, self.states, x, y)
        self.move_state(state_id, result)
        return result

    def move_state(self, state_id: str, result: RegularizerResult) -> bool:
        """
        Apply a regularizer outcome to a state.

        A plain placement only moves the state (layout, nothing staged).
        A merge proposal folds the state into its target and stages a commit
        right away because it changes the topology.
        """
        state = self._live_state(state_id, "move")
        if state is None:
            return False

        if isinstance(result, Placed):
            if state.position != result.position:
                self.states[state_id] = replace(state, position=result.position)
            return True

        if isinstance(result, MergeProposed):
            proposal = result.proposal
            target = self.states.get(proposal.to_id)
            if proposal.from_id != state_id or target is None or not target.is_live:
                logger.warning(f"Ignoring stale merge proposal {proposal}")
                return False
            self.states[state_id] = replace(state, merged=proposal.to_id,
                                            position=Position(proposal.x, proposal.y))
            self.states[proposal.to_id] = replace(target, merged_by=True)
            self.stage_commit(f"merge {state.label} into {target.label}")
            return True

        return False

    def toggle_accepting(self, state_id: str) -> bool:
        state = self._live_state(state_id, "toggle accepting")
        if state is None:
            return False
        if state.is_dummy:
            logger.info(f"Dummy state {state_id!r} cannot be accepting")
            return False
        self.states[state_id] = replace(state, is_accepting=not state.is_accepting)
        self.stage_commit(f"toggle accepting {state.label}")
        return True

    def downgrade_to_dummy(self, state_id: str) -> bool:
        """Turn the selected, non-dummy state into a dummy (the first step of a merge)."""
        state = self._live_state(state_id, "downgrade")
        if state is None:
            return False
        if state.is_dummy or self.selected != state_id:
            logger.info(f"Downgrade of {state_id!r} refused: must be a selected, non-dummy state")
            return False
        self.states[state_id] = replace(state, is_accepting=False, is_dummy=True)
        self.stage_commit(f"downgrade {state.label} to dummy")
        return True

    def delete_state(self, state_id: str) -> bool:
        """Delete a dummy state together with every transition touching it."""
        state = self._live_state(state_id, "delete")
        if state is None:
            return False
        if not state.is_dummy:
            logger.warning(f"Refusing to delete non-dummy state {state_id!r}; downgrade it first")
            return False

        del self.states[state_id]
        self.transitions = {
            tid: t for tid, t in self.transitions.items()
            if t.from_id != state_id and t.to_id != state_id
        }
        if self.selected == state_id:
            self.selected = None
        self.stage_commit(f"delete state {state.label}")
        return True

    def edit_state(self, state_id: str, new_state: State) -> bool:
        """
        Replace the selected state's editable properties.

        Id, position and merge bookkeeping stay with the store; a dummy state
        is never left accepting.
        """
        state = self._live_state(state_id, "edit")
        if state is None:
            return False
        if self.selected != state_id:
            logger.info(f"Edit of {state_id!r} refused: it is not selected")
            return False
        updated = replace(new_state, id=state_id, position=state.position,
                          merged=state.merged, merged_by=state.merged_by)
        if updated.is_dummy and updated.is_accepting:
            updated = replace(updated, is_accepting=False)
        self.states[state_id] = updated
        self.stage_commit(f"edit state {updated.label}")
        return True

    # --- Transition mutations ---

    def create_transition(self, from_id: str, to_id: str, label: str = "") -> Optional[str]:
        """
        Create a transition between two live states.

        The source may have been merged away earlier in the same gesture, in
        which case nothing is created.
        """
        if not self.is_live(from_id) or not self.is_live(to_id):
            logger.warning(f"Transition {from_id!r} -> {to_id!r} refused: endpoint not on the board")
            return None
        transition_id = get_unique_id(self.transitions)
        self.transitions[transition_id] = Transition(transition_id, from_id, to_id, label)
        self.stage_commit(
            f"create transition {self.states[from_id].label} -> {self.states[to_id].label}"
        )
        return transition_id

    def delete_transition(self, transition_id: str) -> bool:
        if transition_id not in self.transitions:
            logger.info(f"Cannot delete transition {transition_id!r}: not found")
            return False
        del self.transitions[transition_id]
        if self.selected == transition_id:
            self.selected = None
        self.stage_commit("delete transition")
        return True

    def edit_transition(self, transition_id: str, new_transition: Transition) -> bool:
        if transition_id not in self.transitions:
            logger.info(f"Cannot edit transition {transition_id!r}: not found")
            return False
        if self.selected != transition_id:
            logger.info(f"Edit of {transition_id!r} refused: it is not selected")
            return False
        if not self.is_live(new_transition.from_id) or not self.is_live(new_transition.to_id):
            logger.warning(f"Edit of {transition_id!r} refused: endpoint not on the board")
            return False
        self.transitions[transition_id] = replace(new_transition, id=transition_id)
        self.stage_commit(f"edit transition {new_transition.label}".rstrip())
        return True

    def apply_tool(self, tool: TransitionTool, params: Sequence[str]) -> List[str]:
        """
        Instantiate ``tool`` over ``params`` and add the resulting transitions.

        Edges touching a state that is no longer live are dropped silently.
        All surviving edges go into a single history entry.

        Returns:
            Ids of the created transitions (empty when nothing was created)
        """
        edges = tool_engine.apply(tool, params)
        if isinstance(edges, str):
            logger.info(f"Tool {tool.name!r} not applied ({edges}): params={list(params)}")
            return []

        created = []
        for edge in edges:
            if not self.is_live(edge.from_id) or not self.is_live(edge.to_id):
                continue
            transition_id = get_unique_id(self.transitions)
            self.transitions[transition_id] = Transition(transition_id, edge.from_id, edge.to_id)
            created.append(transition_id)

        if created:
            self.stage_commit(f"apply tool {tool.name} ({len(created)} transitions)")
        return created

    # --- Whole-graph replacement ---

    def replace_graph(self, states: Mapping[str, State], transitions: Mapping[str, Transition],
                      log: str = "load board") -> None:
        """Swap in a freshly loaded graph and stage it as one history entry."""
        self.states = dict(states)
        self.transitions = dict(transitions)
        self.selected = None
        self.stage_commit(log)
