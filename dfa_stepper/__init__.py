from .automata import AutomatonError, AutomatonModel, AutomatonValidationError
from .cli import run
from .layout import LayoutEngine, active_edge
from .simulation import EmptyInputError, SimulationEngine, SimulationError, simulate

__all__ = [
    "AutomatonError",
    "AutomatonModel",
    "AutomatonValidationError",
    "EmptyInputError",
    "LayoutEngine",
    "SimulationEngine",
    "SimulationError",
    "active_edge",
    "run",
    "simulate",
]
