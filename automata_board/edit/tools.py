"""
Transition tools - reusable edge templates.

A tool describes edges between abstract state slots ``0..stateCount-1``.
Applying it to an ordered list of concrete state ids instantiates those
edges. Tool files are JSON (YAML is accepted inside tool directories):

    {"name": "loop", "stateCount": 1, "edges": [{"from": 0, "to": 0}]}

A batch file is a JSON array of such objects.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import yaml

from automata_board.constants import TOOL_INVALID, TOOL_MISMATCH

logger = logging.getLogger(__name__)

TOOL_FILE_SUFFIXES = frozenset(['.json', '.yaml', '.yml'])


class ToolImportError(ValueError):
    """Raised when a tool file cannot be imported. ``index`` points into a batch."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


@dataclass(frozen=True)
class Edge:
    """Template edge between two parameter slots. Values are checked by validate()."""
    from_index: int
    to_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_index, "to": self.to_index}


@dataclass(frozen=True)
class TransitionEdge:
    """A concrete edge produced by applying a tool."""
    from_id: str
    to_id: str


@dataclass(frozen=True)
class TransitionTool:
    name: str
    state_count: int
    edges: Tuple[Edge, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "stateCount": self.state_count,
            "edges": [e.to_dict() for e in self.edges],
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _integral(value: Any) -> Any:
    """JSON numbers like 2.0 count as integers."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _is_slot(value: Any, state_count: int) -> bool:
    return _is_int(value) and 0 <= value < state_count


def validate(tool: TransitionTool) -> bool:
    """True when stateCount is a positive integer and every edge stays in range."""
    if not _is_int(tool.state_count) or tool.state_count <= 0:
        return False
    return all(
        _is_slot(e.from_index, tool.state_count) and _is_slot(e.to_index, tool.state_count)
        for e in tool.edges
    )


def apply(tool: TransitionTool, params: Sequence[str]) -> Union[List[TransitionEdge], str]:
    """
    Instantiate ``tool`` against ``params``.

    Returns:
        The edges, in template order, or TOOL_INVALID / TOOL_MISMATCH.
    """
    if not validate(tool):
        return TOOL_INVALID
    if len(params) != tool.state_count:
        return TOOL_MISMATCH
    return [TransitionEdge(params[e.from_index], params[e.to_index]) for e in tool.edges]


def tool_from_dict(data: Any) -> TransitionTool:
    """
    Build and validate a tool from its parsed JSON object.

    Raises:
        ToolImportError: on a missing field or an invalid definition
    """
    if not isinstance(data, dict):
        raise ToolImportError("Invalid tool: must be an object.")
    name = data.get('name')
    if not name or not isinstance(name, str):
        raise ToolImportError("Invalid tool: missing 'name' field.")
    state_count = data.get('stateCount')
    if not state_count or isinstance(state_count, bool) or not isinstance(state_count, (int, float)):
        raise ToolImportError("Invalid tool: missing 'stateCount' field.")
    raw_edges = data.get('edges')
    if raw_edges is None:
        raise ToolImportError("Invalid tool: missing 'edges' field.")
    if not isinstance(raw_edges, list) or not all(isinstance(e, dict) for e in raw_edges):
        raise ToolImportError("Invalid tool: 'edges' must be an array of objects.")

    tool = TransitionTool(
        name=name,
        state_count=_integral(state_count),
        edges=tuple(Edge(_integral(e.get('from')), _integral(e.get('to'))) for e in raw_edges),
    )
    if not validate(tool):
        raise ToolImportError("Invalid tool.")
    return tool


def parse_tool(text: str) -> TransitionTool:
    """Parse a single-tool JSON document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ToolImportError(f"Invalid JSON format: {e}") from e
    return tool_from_dict(data)


def parse_tools(text: str) -> List[TransitionTool]:
    """
    Parse a batch (JSON array) of tools.

    All-or-nothing: the first invalid element aborts the whole batch and its
    zero-based index is reported on the raised error.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ToolImportError(f"Invalid JSON format: {e}") from e
    if not isinstance(data, list):
        raise ToolImportError("Invalid batch: expected a JSON array of tools.")

    tools = []
    for i, item in enumerate(data):
        try:
            tools.append(tool_from_dict(item))
        except ToolImportError as e:
            raise ToolImportError(f"Invalid tool at index {i} (starting from 0): {e}", index=i) from e
    return tools


class ToolLibrary:
    """
    Ordered collection of imported transition tools.

    Responsibilities:
    - Import single tools and batches (nothing changes on failure)
    - Load every tool file from a directory (JSON or YAML)
    - Track which tool is current
    """

    def __init__(self, tools: Optional[Sequence[TransitionTool]] = None):
        self._tools: List[TransitionTool] = list(tools or [])
        self.current_index: Optional[int] = 0 if self._tools else None

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools)

    def __getitem__(self, index: int) -> TransitionTool:
        return self._tools[index]

    @property
    def current(self) -> Optional[TransitionTool]:
        if self.current_index is None:
            return None
        return self._tools[self.current_index]

    def select(self, index: int) -> bool:
        if not 0 <= index < len(self._tools):
            logger.info(f"No tool at index {index}")
            return False
        self.current_index = index
        return True

    def add(self, tool: TransitionTool) -> None:
        self._tools.append(tool)
        if self.current_index is None:
            self.current_index = 0

    def import_tool(self, text: str) -> TransitionTool:
        tool = parse_tool(text)
        self.add(tool)
        return tool

    def import_tools(self, text: str) -> List[TransitionTool]:
        tools = parse_tools(text)
        for tool in tools:
            self.add(tool)
        return tools

    def load_dir(self, tools_dir: Path) -> List[str]:
        """
        Import every tool file in ``tools_dir`` (sorted by name).

        A file may hold one tool or a list of tools. Broken files are skipped
        and reported; the other files still load.

        Returns:
            List of error messages, empty when everything loaded
        """
        errors = []
        if not tools_dir.is_dir():
            return errors

        for path in sorted(tools_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in TOOL_FILE_SUFFIXES:
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) if path.suffix.lower() != '.json' else json.load(f)
                items = data if isinstance(data, list) else [data]
                tools = [tool_from_dict(item) for item in items]
            except (OSError, UnicodeDecodeError, json.JSONDecodeError,
                    yaml.YAMLError, ToolImportError) as e:
                logger.warning(f"Skipping tool file {path}: {e}")
                errors.append(f"{path.name}: {e}")
                continue
            for tool in tools:
                self.add(tool)
        return errors
