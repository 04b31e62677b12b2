from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

LAYOUT_RADIUS_RATIO = 0.35


@dataclass(frozen=True)
class StatePosition:
    x: float
    y: float
    angle: float


class Edge(NamedTuple):
    source: str
    symbol: str
    destination: str


def circular_layout(states: Sequence[str], width: float, height: float) -> Dict[str, StatePosition]:
    """Spread states evenly on a circle centred in a ``width`` x ``height`` surface."""
    count = len(states)
    if not count:
        return {}
    cx, cy = width / 2, height / 2
    radius = LAYOUT_RADIUS_RATIO * min(width, height)
    positions: Dict[str, StatePosition] = {}
    for idx, state in enumerate(states):
        angle = 2 * math.pi * idx / count
        positions[state] = StatePosition(
            x=cx + radius * math.cos(angle),
            y=cy + radius * math.sin(angle),
            angle=angle,
        )
    return positions


class LayoutEngine:
    """Caches the circular layout until the state list or surface size changes."""

    def __init__(self) -> None:
        self._key: Optional[Tuple[Tuple[str, ...], float, float]] = None
        self._positions: Mapping[str, StatePosition] = MappingProxyType({})

    def positions(self, states: Sequence[str], width: float, height: float) -> Mapping[str, StatePosition]:
        key = (tuple(states), width, height)
        if key != self._key:
            logger.debug("Laying out %d states on %sx%s.", len(states), width, height)
            self._positions = MappingProxyType(circular_layout(key[0], width, height))
            self._key = key
        return self._positions

    def invalidate(self) -> None:
        self._key = None
        self._positions = MappingProxyType({})


# ---------------------------------------------------------------
# Edge highlighting works on any trace whose entries expose ``state`` and ``symbol``.

def active_edge(trace: Sequence, cursor: int) -> Optional[Edge]:
    """The transition taken to reach the configuration under the cursor."""
    if cursor < 1 or cursor >= len(trace):
        return None
    before, after = trace[cursor - 1], trace[cursor]
    return Edge(before.state, after.symbol, after.state)


def traversed_edges(trace: Sequence, cursor: int) -> List[Edge]:
    """Every distinct transition consumed up to and including the cursor, in order."""
    edges: List[Edge] = []
    for step in range(1, min(cursor, len(trace) - 1) + 1):
        edge = Edge(trace[step - 1].state, trace[step].symbol, trace[step].state)
        if edge not in edges:
            edges.append(edge)
    return edges


def is_edge_active(trace: Sequence, cursor: int, source: str, symbol: str, destination: str) -> bool:
    return active_edge(trace, cursor) == (source, symbol, destination)
