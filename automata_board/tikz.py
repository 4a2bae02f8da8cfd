"""
TikZ exporter for automata boards.

Produces a ``tikzpicture`` block for the LaTeX ``automata`` library from a
states map and a transitions map. The export is a pure function of its
inputs; the graph is never modified.

The automaton is first assembled as a NetworkX MultiDiGraph (parallel edges
and self-loops are both legal), then walked to emit:

    \\begin{tikzpicture}[shorten >=1pt, node distance=5cm, on grid, auto]
    \\node[state] (q0) at (0, 0) {$ a $};
    \\path[->]
    (q0) edge[loop above] node {$ x $} ();
    \\end{tikzpicture}

Node names depend on the labeling option:
- "identity": the state id itself
- "rearrange": q0, q1, ... in state order
- an integer N: the first N characters of the id
"""

from typing import Dict, Mapping, Union

import networkx as nx

from automata_board.graph import State, Transition

IDENTITY = "identity"
REARRANGE = "rearrange"

LabelingOption = Union[int, str]

HEADER = "\\begin{tikzpicture}[shorten >=1pt, node distance=5cm, on grid, auto]\n"
FOOTER = "\\end{tikzpicture}"


def format_number(value: float) -> str:
    """Print coordinates the way a person would type them: 2 not 2.0, 0 not -0."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def get_id_map(states: Mapping[str, State], option: LabelingOption = REARRANGE) -> Dict[str, str]:
    if option == IDENTITY:
        return {key: key for key in states}
    if option == REARRANGE:
        return {key: f"q{i}" for i, key in enumerate(states)}
    if isinstance(option, int) and not isinstance(option, bool) and option > 0:
        return {key: key[:option] for key in states}
    raise ValueError(f"Unknown labeling option {option!r} (use 'identity', 'rearrange' or a positive int)")


def get_state_type(state: State) -> str:
    return "state, accepting" if state.is_accepting else "state"


class TikzExporter:
    """
    Build TikZ source for an automaton.

    The NetworkX graph built by the last export is kept on ``self.G`` so
    callers can inspect what was emitted (e.g. which transitions were
    skipped for pointing at unknown states).
    """

    def __init__(self):
        self.G = nx.MultiDiGraph()

    def build_graph(self, states: Mapping[str, State], transitions: Mapping[str, Transition]) -> nx.MultiDiGraph:
        self.G = nx.MultiDiGraph()
        for key, state in states.items():
            self.G.add_node(key, state=state)
        for order, (key, t) in enumerate(transitions.items()):
            # Only add edges if both endpoints exist
            if t.from_id in self.G.nodes and t.to_id in self.G.nodes:
                self.G.add_edge(t.from_id, t.to_id, key=key, label=t.label, order=order)
        return self.G

    def generate(self, states: Mapping[str, State], transitions: Mapping[str, Transition],
                 option: LabelingOption = REARRANGE, scale: float = 1) -> str:
        mapping = get_id_map(states, option)
        G = self.build_graph(states, transitions)

        nodes = ""
        for key, attrs in G.nodes(data=True):
            state = attrs["state"]
            x = format_number(state.position.x * scale)
            y = format_number(-state.position.y * scale)
            nodes += f"\\node[{get_state_type(state)}] ({mapping[key]}) at ({x}, {y}) {{$ {state.label} $}};\n"

        edges = sorted(G.edges(data=True), key=lambda e: e[2]["order"])
        paths = "\\path[->]"
        for src, tgt, attrs in edges:
            paths += "\n"
            if src == tgt:
                paths += f"({mapping[src]}) edge[loop above] node {{$ {attrs['label']} $}} ()"
            else:
                paths += f"({mapping[src]}) edge node {{$ {attrs['label']} $}} ({mapping[tgt]})"
        paths += ";\n"

        return HEADER + nodes + paths + FOOTER


def get_tikz_from_automata(states: Mapping[str, State], transitions: Mapping[str, Transition],
                           option: LabelingOption = REARRANGE, scale: float = 1) -> str:
    """Convenience wrapper around TikzExporter.generate."""
    return TikzExporter().generate(states, transitions, option, scale)
