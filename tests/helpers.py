from typing import Callable, List, Optional, Tuple

from dfa_stepper.automata import AutomatonModel


def example_automaton() -> AutomatonModel:
    return AutomatonModel(
        ["q0", "q1", "q2"],
        ["0", "1"],
        {
            "q0": {"0": "q0", "1": "q1"},
            "q1": {"0": "q2", "1": "q0"},
            "q2": {"0": "q1", "1": "q2"},
        },
        "q0",
        ["q2"],
    )


class ManualScheduler:
    """Collects scheduled callbacks so tests decide when timers fire."""

    def __init__(self) -> None:
        self.pending: List[Tuple[int, int, Callable[[], None]]] = []
        self.cancelled: List[int] = []
        self._next_handle = 0

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._next_handle += 1
        self.pending.append((self._next_handle, delay_ms, callback))
        return self._next_handle

    def cancel(self, handle: int) -> None:
        self.cancelled.append(handle)
        self.pending = [entry for entry in self.pending if entry[0] != handle]

    def fire(self) -> bool:
        if not self.pending:
            return False
        _, _, callback = self.pending.pop(0)
        callback()
        return True

    def last_delay(self) -> Optional[int]:
        return self.pending[-1][1] if self.pending else None
