from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Tuple

from .automata import AutomatonModel
from .layout import Edge, active_edge, traversed_edges

logger = logging.getLogger(__name__)

MIN_SPEED_MS = 100
MAX_SPEED_MS = 1000
SPEED_INCREMENT_MS = 100
DEFAULT_SPEED_MS = 500

EMPTY_INPUT_MESSAGE = "Please enter an input string to test."


class SimulationError(Exception):
    """Simulation refused to get going."""


class EmptyInputError(SimulationError):
    """Nothing to test."""


class SimulationStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class OutcomeKind(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SYMBOL_ERROR = "symbol-error"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    symbol: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.kind is not OutcomeKind.PENDING

    def __str__(self) -> str:
        if self.kind is OutcomeKind.SYMBOL_ERROR:
            return f"symbol-error({self.symbol})"
        return self.kind.value


PENDING = Outcome(OutcomeKind.PENDING)
ACCEPTED = Outcome(OutcomeKind.ACCEPTED)
REJECTED = Outcome(OutcomeKind.REJECTED)


def symbol_error(symbol: str) -> Outcome:
    return Outcome(OutcomeKind.SYMBOL_ERROR, symbol)


@dataclass(frozen=True)
class Configuration:
    state: str
    consumed: str
    remaining: str
    step_index: int
    symbol: Optional[str] = None


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only view of an engine, handed to renderers and listeners."""

    status: SimulationStatus
    outcome: Outcome
    cursor: int
    trace: Tuple[Configuration, ...]
    input: str
    speed_ms: int

    @property
    def current(self) -> Optional[Configuration]:
        return self.trace[self.cursor] if self.trace else None

    @property
    def active_edge(self) -> Optional[Edge]:
        return active_edge(self.trace, self.cursor)

    @property
    def traversed_edges(self) -> List[Edge]:
        return traversed_edges(self.trace, self.cursor)

    @property
    def message(self) -> str:
        current = self.current
        if self.outcome.kind is OutcomeKind.ACCEPTED:
            return f'Success! Input "{self.input}" is accepted.'
        if self.outcome.kind is OutcomeKind.REJECTED and current is not None:
            return (
                f'Rejected! Input "{self.input}" ends in state {current.state}, '
                "which is not an accepting state."
            )
        if self.outcome.kind is OutcomeKind.SYMBOL_ERROR:
            return f"Symbol '{self.outcome.symbol}' is not in the alphabet."
        if current is None:
            return "Simulation idle."
        return f"Step {current.step_index}: in state {current.state}."


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class ThreadingScheduler:
    """Fires callbacks on ``threading.Timer`` threads."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_ms / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


def clamp_speed(speed_ms: int) -> int:
    """Clamp a requested delay into the allowed range, snapped to the slider increment."""
    snapped = int(round(speed_ms / SPEED_INCREMENT_MS)) * SPEED_INCREMENT_MS
    return max(MIN_SPEED_MS, min(MAX_SPEED_MS, snapped))


Listener = Callable[[SimulationSnapshot], None]


class SimulationEngine:
    """Walks an input through an automaton one symbol at a time, with a reversible cursor.

    When a scheduler is supplied, a running simulation advances by itself every
    ``speed_ms`` milliseconds. The engine owns the only pending timer handle and
    cancels it on pause, stop, restart and rewind.
    """

    def __init__(
        self,
        automaton: AutomatonModel,
        *,
        scheduler: Optional[Scheduler] = None,
        speed_ms: int = DEFAULT_SPEED_MS,
    ) -> None:
        self._automaton = automaton
        self._scheduler = scheduler
        self._speed_ms = self._checked_speed(speed_ms)
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._pending: Any = None
        self._pending_token: Optional[object] = None
        self._input = ""
        self._trace: List[Configuration] = []
        self._cursor = 0
        self._outcome = PENDING
        self._status = SimulationStatus.IDLE

    # ---------------------------------------------------------------
    @property
    def automaton(self) -> AutomatonModel:
        return self._automaton

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def trace(self) -> Tuple[Configuration, ...]:
        return tuple(self._trace)

    @property
    def speed_ms(self) -> int:
        return self._speed_ms

    @property
    def current(self) -> Optional[Configuration]:
        return self._trace[self._cursor] if self._trace else None

    @property
    def has_pending_step(self) -> bool:
        return self._pending is not None

    def snapshot(self) -> SimulationSnapshot:
        with self._lock:
            return SimulationSnapshot(
                status=self._status,
                outcome=self._outcome,
                cursor=self._cursor,
                trace=tuple(self._trace),
                input=self._input,
                speed_ms=self._speed_ms,
            )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshots after every change; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------------------------------------------
    def submit(self, text: str) -> Optional[Configuration]:
        """Start a test run from user input, refusing an empty string."""
        if not text:
            raise EmptyInputError(EMPTY_INPUT_MESSAGE)
        return self.start(text)

    def start(self, text: str) -> Optional[Configuration]:
        self._automaton.check()
        with self._lock:
            self._cancel_pending()
            self._input = text
            self._trace = [Configuration(self._automaton.initial_state, "", text, 0)]
            self._cursor = 0
            self._outcome = PENDING
            self._status = SimulationStatus.RUNNING
            logger.debug("Started run on %r from %s.", text, self._automaton.initial_state)
            if not text:
                self._forward()
            self._schedule_next()
        self._notify()
        return self.current

    def step(self) -> Optional[Configuration]:
        """Advance one configuration; a no-op unless running with a pending outcome."""
        with self._lock:
            if self._status is not SimulationStatus.RUNNING or self._outcome.is_final:
                return self.current
            self._cancel_pending()
            self._forward()
            self._schedule_next()
        self._notify()
        return self.current

    def step_forward(self) -> Optional[Configuration]:
        """Manual forward step; replays the cached suffix after a rewind."""
        with self._lock:
            if self._status in (SimulationStatus.IDLE, SimulationStatus.COMPLETED):
                return self.current
            self._cancel_pending()
            self._forward()
            self._schedule_next()
        self._notify()
        return self.current

    def step_back(self) -> Optional[Configuration]:
        with self._lock:
            if self._status is SimulationStatus.IDLE or self._cursor == 0:
                return self.current
            self._cancel_pending()
            self._cursor -= 1
            self._outcome = PENDING
            self._status = SimulationStatus.PAUSED
            logger.debug("Rewound to step %d.", self._cursor)
        self._notify()
        return self.current

    def pause(self) -> None:
        with self._lock:
            if self._status is not SimulationStatus.RUNNING:
                return
            self._cancel_pending()
            self._status = SimulationStatus.PAUSED
        self._notify()

    def resume(self) -> None:
        with self._lock:
            if self._status is not SimulationStatus.PAUSED:
                return
            self._status = SimulationStatus.RUNNING
            self._schedule_next()
        self._notify()

    def stop(self) -> None:
        with self._lock:
            self._cancel_pending()
            self._input = ""
            self._trace = []
            self._cursor = 0
            self._outcome = PENDING
            self._status = SimulationStatus.IDLE
        self._notify()

    def set_speed(self, speed_ms: int) -> None:
        """Set the auto-play delay; the next scheduled step picks it up."""
        self._speed_ms = self._checked_speed(speed_ms)

    # ---------------------------------------------------------------
    @staticmethod
    def _checked_speed(speed_ms: int) -> int:
        if not MIN_SPEED_MS <= speed_ms <= MAX_SPEED_MS:
            raise ValueError(
                f"Speed must be between {MIN_SPEED_MS} and {MAX_SPEED_MS} ms, got {speed_ms}."
            )
        return int(speed_ms)

    def _forward(self) -> None:
        if self._cursor < len(self._trace) - 1:
            self._cursor += 1
            return
        config = self._trace[self._cursor]
        if not config.remaining:
            accepted = self._automaton.is_accepting(config.state)
            self._complete(ACCEPTED if accepted else REJECTED)
            return
        symbol = self._automaton.match_symbol(config.remaining)
        if symbol is None:
            self._complete(symbol_error(config.remaining[0]))
            return
        destination = self._automaton.next_state(config.state, symbol)
        self._trace.append(
            Configuration(
                state=destination,
                consumed=config.consumed + symbol,
                remaining=config.remaining[len(symbol):],
                step_index=config.step_index + 1,
                symbol=symbol,
            )
        )
        self._cursor = len(self._trace) - 1
        logger.debug("d(%s, %s) -> %s", config.state, symbol, destination)

    def _complete(self, outcome: Outcome) -> None:
        self._outcome = outcome
        self._status = SimulationStatus.COMPLETED
        self._cancel_pending()
        logger.debug("Run on %r finished: %s.", self._input, outcome)

    def _schedule_next(self) -> None:
        if (
            self._scheduler is None
            or self._status is not SimulationStatus.RUNNING
            or self._outcome.is_final
        ):
            return
        token = object()
        self._pending_token = token
        self._pending = self._scheduler.schedule(self._speed_ms, lambda: self._on_timer(token))
        logger.debug("Next step scheduled in %d ms.", self._speed_ms)

    def _cancel_pending(self) -> None:
        if self._pending is not None and self._scheduler is not None:
            self._scheduler.cancel(self._pending)
            logger.debug("Cancelled pending step.")
        self._pending = None
        self._pending_token = None

    def _on_timer(self, token: object) -> None:
        with self._lock:
            if token is not self._pending_token:
                logger.debug("Ignoring stale timer.")
                return
            self._pending = None
            self._pending_token = None
            if self._status is not SimulationStatus.RUNNING or self._outcome.is_final:
                return
            self._forward()
            self._schedule_next()
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)


def simulate(automaton: AutomatonModel, text: str) -> SimulationSnapshot:
    """Run ``text`` to completion without a scheduler and return the final snapshot."""
    engine = SimulationEngine(automaton)
    engine.start(text)
    while engine.status is SimulationStatus.RUNNING:
        engine.step()
    return engine.snapshot()
