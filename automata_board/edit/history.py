"""
History Manager - linear undo/redo over committed graph snapshots.

The history is a list of immutable AutomataGraph snapshots (index 0 is the
empty board) and a head pointer. Committing while the head is not at the end
drops the redo-able future first. Every head change reloads the store's
working graph from the snapshot at the new head; that reload is the only
point where history and the live board synchronise.
"""

import logging
from typing import List, Optional, Tuple

from automata_board.constants import INITIAL_LOG
from automata_board.graph import AutomataGraph
from automata_board.edit.store import GraphStore

logger = logging.getLogger(__name__)


class HistoryManager:
    """
    Owns the snapshot sequence and the head pointer.

    Usage::

        store = GraphStore()
        history = HistoryManager(store)
        store.create_state(0, 0)
        history.commit_pending()     # snapshot 1
        history.undo()               # back to the empty board
    """

    def __init__(self, store: GraphStore):
        self.store = store
        self._snapshots: List[AutomataGraph] = [
            AutomataGraph.freeze({}, {}, store.config, INITIAL_LOG)
        ]
        self.head = 0
        self.store.load_snapshot(self._snapshots[0])

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def current(self) -> AutomataGraph:
        return self._snapshots[self.head]

    @property
    def can_undo(self) -> bool:
        return self.head > 0

    @property
    def can_redo(self) -> bool:
        return self.head + 1 < len(self._snapshots)

    def snapshot(self, index: int) -> AutomataGraph:
        return self._snapshots[index]

    def entries(self) -> List[Tuple[int, Optional[str]]]:
        """(index, log) pairs for a history browser."""
        return [(i, s.log) for i, s in enumerate(self._snapshots)]

    # --- Commit protocol ---

    def commit(self, log: Optional[str] = None) -> AutomataGraph:
        """
        Snapshot the working graph (after the merge rewrite) and advance the head.

        Snapshots after the current head are discarded first.
        """
        snapshot = self.store.build_snapshot(log)
        if self.can_redo:
            dropped = len(self._snapshots) - self.head - 1
            logger.debug(f"Discarding {dropped} redo snapshot(s)")
            del self._snapshots[self.head + 1:]
        self._snapshots.append(snapshot)
        self._move_head(self.head + 1, deselect=False)
        logger.debug(f"Committed #{self.head}: {log}")
        return snapshot

    def commit_pending(self) -> bool:
        """Commit only if the store has staged a change. Returns True if a snapshot was taken."""
        if not self.store.is_dirty:
            return False
        self.commit(self.store.pending_log)
        return True

    # --- Navigation ---

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._move_head(self.head - 1)
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._move_head(self.head + 1)
        return True

    def jump_to(self, index: int) -> bool:
        if not 0 <= index < len(self._snapshots):
            logger.info(f"History index {index} out of range (0..{len(self._snapshots) - 1})")
            return False
        self._move_head(index)
        return True

    def _move_head(self, index: int, deselect: bool = True) -> None:
        self.head = index
        if deselect:
            self.store.selected = None
        self.store.load_snapshot(self._snapshots[index])
