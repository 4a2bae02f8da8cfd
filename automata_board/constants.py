"""
Shared constants for automata-board.

The board defaults double as the values a renderer should use (grid size and
zoom bounds are display-only). Keep them in sync with any UI!
"""

# Pixels per grid unit at scale 1.0
DEFAULT_GRID_SIZE = 40

# Radius, in grid units, given to newly created states
DEFAULT_STATE_RADIUS = 0.25

# Zoom bounds for the board view
DEFAULT_MIN_SCALE = 0.1
DEFAULT_MAX_SCALE = 10.0

# Dummy states are drawn at a third of their radius
DUMMY_RADIUS_RATIO = 1 / 3

# Number of id characters used in a new state's label
DEFAULT_LABEL_PREFIX_LENGTH = 4

# Log tag of the empty snapshot at history index 0
INITIAL_LOG = "init"

# Results of tools.apply when no edges can be produced
TOOL_INVALID = "invalid"
TOOL_MISMATCH = "mismatch"
