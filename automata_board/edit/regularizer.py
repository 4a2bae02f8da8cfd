"""
Grid Regularizer - snapping and collision detection for state placement.

Every candidate position (from a click or from a drag step) goes through
``regularize`` before it reaches the graph. The outcome is one of:

- Placed: the rounded lattice point is free
- MergeProposed: a dummy state was dropped on an occupied cell
- Rejected: the cell is taken and no merge is possible
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from automata_board.graph import Position, State


@dataclass(frozen=True)
class MergeProposal:
    """Fold state ``from_id`` into ``to_id``, leaving it at (x, y)."""
    from_id: str
    to_id: str
    x: float
    y: float
    action: str = "merge"


@dataclass(frozen=True)
class Placed:
    position: Position


@dataclass(frozen=True)
class MergeProposed:
    proposal: MergeProposal


@dataclass(frozen=True)
class Rejected:
    reason: str = ""


RegularizerResult = Union[Placed, MergeProposed, Rejected]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going towards +inf (-0.5 -> 0, 0.5 -> 1)."""
    return math.floor(value + 0.5)


def snap(x: float, y: float) -> Position:
    return Position(round_half_up(x), round_half_up(y))


def find_occupant(states: Mapping[str, State], cell: Position,
                  exclude: Optional[str] = None) -> Optional[State]:
    """
    Return the live state sitting on ``cell``, ignoring ``exclude``.

    Occupants are compared by their own rounded position so boards loaded
    with off-grid coordinates still collide correctly.
    """
    for state in states.values():
        if state.id == exclude or not state.is_live:
            continue
        if snap(state.position.x, state.position.y) == cell:
            return state
    return None


def regularize(moving: Optional[State], states: Mapping[str, State],
               x: float, y: float) -> RegularizerResult:
    """
    Snap (x, y) to the grid and decide what placing ``moving`` there means.

    Args:
        moving: The state being dragged, or None when a new state is being created
        states: All states currently on the board
        x, y: Candidate position in grid units

    Returns:
        Placed, MergeProposed or Rejected
    """
    cell = snap(x, y)
    occupant = find_occupant(states, cell, exclude=moving.id if moving else None)

    if occupant is None:
        return Placed(cell)
    if moving is None:
        return Rejected(f"cell ({cell.x}, {cell.y}) is occupied by {occupant.id}")
    if not moving.is_dummy:
        return Rejected("only dummy states may be dropped on an occupied cell")
    return MergeProposed(MergeProposal(from_id=moving.id, to_id=occupant.id, x=cell.x, y=cell.y))
