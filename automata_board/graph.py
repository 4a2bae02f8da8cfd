"""
Graph model for automata-board.

States, transitions and board settings are frozen dataclasses so a snapshot
can be shared by the history and by readers without being changed under
them. The working copy held by GraphStore swaps values with
``dataclasses.replace`` instead of mutating them.

JSON keys follow the board file format (camelCase), e.g.:

    {"id": "...", "position": {"x": 0, "y": 1}, "radius": 0.25,
     "label": "q_{ab12}", "isAccepting": false, "isDummy": false,
     "merged": null, "mergedBy": false}
"""

import math
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from automata_board.constants import (
    DEFAULT_GRID_SIZE,
    DEFAULT_STATE_RADIUS,
    DEFAULT_MIN_SCALE,
    DEFAULT_MAX_SCALE,
    DUMMY_RADIUS_RATIO,
    DEFAULT_LABEL_PREFIX_LENGTH,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_number(data: Dict[str, Any], key: str, owner: str) -> float:
    value = data.get(key)
    if not _is_number(value):
        raise ValueError(f"{owner}: '{key}' must be a finite number, got {value!r}")
    return value


def _require_str(data: Dict[str, Any], key: str, owner: str, default: Optional[str] = None) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{owner}: '{key}' must be a string, got {value!r}")
    return value


def _require_bool(data: Dict[str, Any], key: str, owner: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"{owner}: '{key}' must be a boolean, got {value!r}")
    return value


@dataclass(frozen=True)
class Position:
    """A point in grid units (never pixels)."""
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any, owner: str = "position") -> "Position":
        if not isinstance(data, dict):
            raise ValueError(f"{owner}: position must be an object with 'x' and 'y'")
        return cls(_require_number(data, "x", owner), _require_number(data, "y", owner))


@dataclass(frozen=True)
class State:
    """
    A node of the automaton.

    ``merged`` holds the id of the state this one has been folded into; such a
    state is invisible and disappears at the next commit. ``merged_by`` marks
    the target of a pending merge and is only informational.
    """
    id: str
    position: Position
    radius: float = DEFAULT_STATE_RADIUS
    label: str = ""
    is_accepting: bool = False
    is_dummy: bool = False
    merged: Optional[str] = None
    merged_by: bool = False

    @property
    def is_live(self) -> bool:
        return self.merged is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "radius": self.radius,
            "label": self.label,
            "isAccepting": self.is_accepting,
            "isDummy": self.is_dummy,
            "merged": self.merged,
            "mergedBy": self.merged_by,
        }

    @classmethod
    def from_dict(cls, data: Any, key: Optional[str] = None) -> "State":
        """
        Build a State from its JSON object.

        ``key`` is the map key the object was stored under; it fills in a
        missing ``id`` and must agree with a present one.
        """
        owner = f"state {key!r}" if key is not None else "state"
        if not isinstance(data, dict):
            raise ValueError(f"{owner}: must be an object")
        state_id = _require_str(data, "id", owner, default=key)
        if key is not None and state_id != key:
            raise ValueError(f"{owner}: id {state_id!r} does not match its key")
        merged = data.get("merged")
        if merged is not None and not isinstance(merged, str):
            raise ValueError(f"{owner}: 'merged' must be a state id or null")
        radius = data.get("radius", DEFAULT_STATE_RADIUS)
        if not _is_number(radius) or radius <= 0:
            raise ValueError(f"{owner}: 'radius' must be a positive number")
        return cls(
            id=state_id,
            position=Position.from_dict(data.get("position"), owner),
            radius=radius,
            label=_require_str(data, "label", owner, default=""),
            is_accepting=_require_bool(data, "isAccepting", owner),
            is_dummy=_require_bool(data, "isDummy", owner),
            merged=merged,
            merged_by=_require_bool(data, "mergedBy", owner),
        )


@dataclass(frozen=True)
class Transition:
    """A directed, labeled edge. ``from_id == to_id`` is a self-loop."""
    id: str
    from_id: str
    to_id: str
    label: str = ""

    @property
    def is_loop(self) -> bool:
        return self.from_id == self.to_id

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "fromID": self.from_id, "toID": self.to_id, "label": self.label}

    @classmethod
    def from_dict(cls, data: Any, key: Optional[str] = None) -> "Transition":
        owner = f"transition {key!r}" if key is not None else "transition"
        if not isinstance(data, dict):
            raise ValueError(f"{owner}: must be an object")
        transition_id = _require_str(data, "id", owner, default=key)
        if key is not None and transition_id != key:
            raise ValueError(f"{owner}: id {transition_id!r} does not match its key")
        return cls(
            id=transition_id,
            from_id=_require_str(data, "fromID", owner),
            to_id=_require_str(data, "toID", owner),
            label=_require_str(data, "label", owner, default=""),
        )


@dataclass(frozen=True)
class BoardConfig:
    """Board settings copied into every snapshot. Only state_radius matters to the core."""
    grid_size: float = DEFAULT_GRID_SIZE
    state_radius: float = DEFAULT_STATE_RADIUS
    min_scale: float = DEFAULT_MIN_SCALE
    max_scale: float = DEFAULT_MAX_SCALE

    def to_dict(self) -> Dict[str, float]:
        return {
            "gridSize": self.grid_size,
            "stateRadius": self.state_radius,
            "minScale": self.min_scale,
            "maxScale": self.max_scale,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardConfig":
        """Build from a (possibly partial) dict; unknown keys are ignored."""
        defaults = cls()
        return cls(
            grid_size=data.get("gridSize", defaults.grid_size),
            state_radius=data.get("stateRadius", defaults.state_radius),
            min_scale=data.get("minScale", defaults.min_scale),
            max_scale=data.get("maxScale", defaults.max_scale),
        )


@dataclass(frozen=True)
class AutomataGraph:
    """
    One history snapshot.

    Use :meth:`freeze` to build one; it copies the given maps into read-only
    mappings so later edits to the source dicts never reach the snapshot.
    """
    states: Mapping[str, State] = field(default_factory=lambda: MappingProxyType({}))
    transitions: Mapping[str, Transition] = field(default_factory=lambda: MappingProxyType({}))
    config: BoardConfig = field(default_factory=BoardConfig)
    log: Optional[str] = None

    @classmethod
    def freeze(cls, states: Mapping[str, State], transitions: Mapping[str, Transition],
               config: BoardConfig, log: Optional[str] = None) -> "AutomataGraph":
        return cls(
            states=MappingProxyType(dict(states)),
            transitions=MappingProxyType(dict(transitions)),
            config=config,
            log=log,
        )

    def to_dict(self) -> Dict[str, Any]:
        """The board file payload: states and transitions only."""
        return {
            "states": {sid: s.to_dict() for sid, s in self.states.items()},
            "transitions": {tid: t.to_dict() for tid, t in self.transitions.items()},
        }


def get_unique_id(record: Mapping[str, Any]) -> str:
    """Return a UUID4 string that is not already a key of ``record``."""
    new_id = str(uuid.uuid4())
    while new_id in record:
        new_id = str(uuid.uuid4())
    return new_id


def default_label(state_id: str) -> str:
    """Label given to a freshly created state, e.g. ``q_{3f2a}``."""
    return f"q_{{{state_id[:DEFAULT_LABEL_PREFIX_LENGTH]}}}"


def make_state(state_id: str, position: Position, radius: float = DEFAULT_STATE_RADIUS) -> State:
    """
    Create a plain state following the board schema.
    The label is derived from the id; every flag starts out false.
    """
    return State(id=state_id, position=position, radius=radius, label=default_label(state_id))


def display_radius(state: State) -> float:
    """Radius the renderer should draw; dummy states are drawn smaller."""
    return state.radius * DUMMY_RADIUS_RATIO if state.is_dummy else state.radius


def dangling_transitions(states: Mapping[str, State], transitions: Mapping[str, Transition]) -> List[str]:
    """Ids of transitions whose endpoints are missing from ``states``."""
    return [
        tid for tid, t in transitions.items()
        if t.from_id not in states or t.to_id not in states
    ]
