"""
Editing core for automata boards.

This package provides the graph-editing state machine:
- regularize: grid snapping, collision and merge detection
- GraphStore: working graph mutations and the merge-commit rewrite
- HistoryManager: snapshot history, commit protocol, undo/redo
- tools: transition tool validation, application and library
- EditorSession: intent surface tying it all together

Usage:
    from automata_board.edit import EditorSession
    session = EditorSession()
    session.create_state_at(0, 0)
"""

from automata_board.edit.regularizer import (
    MergeProposal,
    MergeProposed,
    Placed,
    Rejected,
    regularize,
)
from automata_board.edit.store import GraphStore, resolve_merges
from automata_board.edit.history import HistoryManager
from automata_board.edit.tools import (
    ToolImportError,
    ToolLibrary,
    TransitionEdge,
    TransitionTool,
)
from automata_board.edit.controller import EditorSession, EditState

__all__ = [
    'EditorSession',
    'EditState',
    'GraphStore',
    'HistoryManager',
    'MergeProposal',
    'MergeProposed',
    'Placed',
    'Rejected',
    'regularize',
    'resolve_merges',
    'ToolImportError',
    'ToolLibrary',
    'TransitionEdge',
    'TransitionTool',
]
