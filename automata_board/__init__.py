"""
automata-board: editing core for grid-placed finite automata.

The package holds the graph model, the editing state machine (snapping,
merging, history, transition tools), JSON persistence and TikZ export.
Rendering is left to whatever UI drives the EditorSession.
"""

__version__ = "0.3.0"
