from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Tuple

from .automata import AutomatonModel
from .layout import Edge, StatePosition
from .simulation import SimulationSnapshot

ACTIVE_COLOR = "red"
TRAVERSED_COLOR = "orange"
CURRENT_STATE_FILL = "palegreen"
POINTS_PER_INCH = 72.0


def automaton_to_dot(
    automaton: AutomatonModel,
    *,
    graph_name: str = "Automaton",
    rankdir: str = "LR",
    positions: Optional[Mapping[str, StatePosition]] = None,
    snapshot: Optional[SimulationSnapshot] = None,
) -> str:
    """Return a Graphviz DOT representation for the provided automaton.

    With ``positions`` every node is pinned (render with ``neato -n``). With a
    ``snapshot`` the current state is filled, the edge taken on the last step is
    drawn in red and earlier edges of the path in orange.
    """
    current_state: Optional[str] = None
    active: Optional[Edge] = None
    traversed: List[Edge] = []
    if snapshot is not None:
        if snapshot.current is not None:
            current_state = snapshot.current.state
        active = snapshot.active_edge
        traversed = snapshot.traversed_edges

    lines: List[str] = [f'digraph "{_escape(graph_name)}" {{']
    lines.append(f"  rankdir={rankdir};")
    lines.append("  node [shape=circle];")
    lines.append("  __start__ [shape=point];")
    lines.append(f'  __start__ -> "{_escape(automaton.initial_state)}";')

    for state in automaton.states:
        shape = "doublecircle" if automaton.is_accepting(state) else "circle"
        attributes = [f"shape={shape}"]
        if positions is not None and state in positions:
            pos = positions[state]
            attributes.append(f'pos="{pos.x / POINTS_PER_INCH:.4f},{-pos.y / POINTS_PER_INCH:.4f}!"')
        if state == current_state:
            attributes.append("style=filled")
            attributes.append(f'fillcolor="{CURRENT_STATE_FILL}"')
        lines.append(f'  "{_escape(state)}" [{", ".join(attributes)}];')

    for source, destination, symbols in _collect_edges(automaton):
        label = ", ".join(symbols)
        attributes = [f'label="{_escape(label)}"']
        edges = [Edge(source, symbol, destination) for symbol in symbols]
        if active is not None and active in edges:
            attributes.append(f'color="{ACTIVE_COLOR}"')
            attributes.append(f'fontcolor="{ACTIVE_COLOR}"')
            attributes.append("penwidth=2")
        elif any(edge in traversed for edge in edges):
            attributes.append(f'color="{TRAVERSED_COLOR}"')
        attr_text = ", ".join(attributes)
        lines.append(f'  "{_escape(source)}" -> "{_escape(destination)}" [{attr_text}];')

    lines.append("}")
    return "\n".join(lines)


def _collect_edges(automaton: AutomatonModel) -> Iterable[Tuple[str, str, List[str]]]:
    grouped: dict[Tuple[str, str], List[str]] = {}
    for state in automaton.states:
        row = automaton.transitions.get(state, {})
        for symbol in automaton.alphabet:
            destination = row.get(symbol)
            if destination is None:
                continue
            grouped.setdefault((state, destination), []).append(symbol)
    for (source, destination), symbols in grouped.items():
        yield source, destination, symbols


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def write_dot(automaton: AutomatonModel, path: str, **kwargs) -> str:
    """Generate a DOT file at `path` and return the path."""
    dot = automaton_to_dot(automaton, **kwargs)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(dot + "\n")
    return path
