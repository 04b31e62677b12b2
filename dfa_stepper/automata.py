from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

LIST_SPLIT_RE = re.compile(r",")


class AutomatonError(Exception):
    """Base meltdown for automata drama."""


class AutomatonValidationError(AutomatonError):
    """Definition is cursed or whatever."""


TransitionMap = Dict[str, Dict[str, str]]
DefaultTargetPolicy = Callable[[Sequence[str], str], str]


def first_state_target(states: Sequence[str], row_state: str) -> str:
    """Point fresh transition cells at the first declared state, else loop back."""
    return states[0] if states else row_state


@dataclass(frozen=True)
class DefinitionIssue:
    kind: str
    message: str

    def __str__(self) -> str:
        return self.message


DEFAULT_DEFINITION: Dict[str, Any] = {
    "states": ["q0", "q1", "q2"],
    "alphabet": ["0", "1"],
    "transitions": {
        "q0": {"0": "q0", "1": "q1"},
        "q1": {"0": "q2", "1": "q0"},
        "q2": {"0": "q1", "1": "q2"},
    },
    "initial_state": "q0",
    "accepting_states": ["q2"],
}


def split_list(text: str) -> List[str]:
    """Split editor text on commas, trimming and discarding blank tokens."""
    if not text:
        return []
    return [token.strip() for token in LIST_SPLIT_RE.split(text) if token.strip()]


def _unique(values: Iterable[str], what: str) -> List[str]:
    seen: List[str] = []
    for value in values:
        if not isinstance(value, str):
            raise AutomatonValidationError("State and symbol names must be strings.")
        value = value.strip()
        if not value:
            continue
        if value in seen:
            logger.warning("Dropping duplicate %s %r.", what, value)
            continue
        seen.append(value)
    return seen


class AutomatonModel:
    """Editable DFA definition that keeps its transition table total after every edit."""

    __slots__ = (
        "_states",
        "_alphabet",
        "_transitions",
        "_initial_state",
        "_accepting_states",
        "_default_target",
    )

    def __init__(
        self,
        states: Sequence[str],
        alphabet: Sequence[str],
        transitions: Mapping[str, Mapping[str, str]],
        initial_state: str,
        accepting_states: Iterable[str],
        *,
        default_target: DefaultTargetPolicy = first_state_target,
    ) -> None:
        self._default_target = default_target
        self._states: Tuple[str, ...] = tuple(_unique(states, "state"))
        self._alphabet: Tuple[str, ...] = tuple(_unique(alphabet, "symbol"))
        self._initial_state = self._normalize(initial_state)
        self._accepting_states: FrozenSet[str] = frozenset(
            _unique(accepting_states, "accepting state")
        )
        self._transitions: TransitionMap = {}
        for state in self._states:
            row = transitions.get(state, {})
            self._transitions[state] = {}
            for symbol in self._alphabet:
                destination = row.get(symbol)
                if destination is None or destination not in self._states:
                    destination = self._default_target(self._states, state)
                self._transitions[state][symbol] = destination

    @classmethod
    def default(cls, **kwargs: Any) -> "AutomatonModel":
        """The three-state example every fresh editor starts with."""
        return cls.from_payload(DEFAULT_DEFINITION, **kwargs)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], **kwargs: Any) -> "AutomatonModel":
        if not isinstance(payload, Mapping):
            raise ValueError("Automaton payload must be a mapping.")
        data = dict(payload)
        if "states" in data:
            data.setdefault("alphabet", DEFAULT_DEFINITION["alphabet"])
            data.setdefault("transitions", {})
            data.setdefault("accepting_states", [])
            states_value = data["states"]
            if isinstance(states_value, str):
                states_value = split_list(states_value)
            if "initial_state" not in data and isinstance(states_value, list) and states_value:
                data["initial_state"] = states_value[0]
        data = {**DEFAULT_DEFINITION, **data}
        states = _require_string_list(data, "states")
        alphabet = _require_string_list(data, "alphabet")
        accepting = _require_string_list(data, "accepting_states")
        initial = data.get("initial_state")
        if not isinstance(initial, str):
            raise ValueError("Config field 'initial_state' must be a string.")
        transitions = data.get("transitions")
        if not isinstance(transitions, Mapping):
            raise ValueError("Config field 'transitions' must be an object.")
        normalized: TransitionMap = {}
        for state, row in transitions.items():
            if not isinstance(row, Mapping):
                raise ValueError(f"Transitions for state '{state}' must be an object.")
            normalized[str(state)] = {}
            for symbol, destination in row.items():
                if not isinstance(destination, str):
                    raise ValueError(
                        f"Transition for state '{state}' and symbol '{symbol}' must be a single state name."
                    )
                normalized[str(state)][str(symbol)] = destination
        return cls(states, alphabet, normalized, initial, accepting, **kwargs)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "states": list(self._states),
            "alphabet": list(self._alphabet),
            "transitions": {state: dict(row) for state, row in self._transitions.items()},
            "initial_state": self._initial_state,
            "accepting_states": [s for s in self._states if s in self._accepting_states],
        }

    # ---------------------------------------------------------------
    @staticmethod
    def _normalize(name: str) -> str:
        if not isinstance(name, str):
            raise AutomatonValidationError("State and symbol names must be strings.")
        return name.strip()

    @property
    def states(self) -> Tuple[str, ...]:
        return self._states

    @property
    def alphabet(self) -> Tuple[str, ...]:
        return self._alphabet

    @property
    def transitions(self) -> Mapping[str, Mapping[str, str]]:
        return self._transitions

    @property
    def initial_state(self) -> str:
        return self._initial_state

    @property
    def accepting_states(self) -> FrozenSet[str]:
        return self._accepting_states

    # ---------------------------------------------------------------
    def set_states(self, new_states: Sequence[str] | str) -> List[DefinitionIssue]:
        if isinstance(new_states, str):
            new_states = split_list(new_states)
        states = tuple(_unique(new_states, "state"))
        transitions: TransitionMap = {}
        for state in states:
            old_row = self._transitions.get(state)
            row: Dict[str, str] = {}
            for symbol in self._alphabet:
                destination = old_row.get(symbol) if old_row is not None else None
                if destination is None or destination not in states:
                    destination = self._default_target(states, state)
                row[symbol] = destination
            transitions[state] = row
        self._states = states
        self._transitions = transitions
        if states and self._initial_state not in states:
            self._initial_state = states[0]
        self._accepting_states = frozenset(s for s in self._accepting_states if s in states)
        logger.debug("States now %s.", ", ".join(states) or "<none>")
        return self.issues()

    def set_alphabet(self, new_alphabet: Sequence[str] | str) -> List[DefinitionIssue]:
        if isinstance(new_alphabet, str):
            new_alphabet = split_list(new_alphabet)
        alphabet = tuple(_unique(new_alphabet, "symbol"))
        for state in self._states:
            old_row = self._transitions[state]
            self._transitions[state] = {
                symbol: old_row.get(symbol) or self._default_target(self._states, state)
                for symbol in alphabet
            }
        self._alphabet = alphabet
        logger.debug("Alphabet now %s.", ", ".join(alphabet) or "<none>")
        return self.issues()

    def set_initial_state(self, state: str) -> List[DefinitionIssue]:
        self._initial_state = self._normalize(state)
        return self.issues()

    def set_accepting_states(self, states: Sequence[str] | str) -> List[DefinitionIssue]:
        if isinstance(states, str):
            states = split_list(states)
        self._accepting_states = frozenset(_unique(states, "accepting state"))
        return self.issues()

    def set_transition(self, source: str, symbol: str, destination: str) -> List[DefinitionIssue]:
        row = self._transitions.get(source)
        if row is None or symbol not in row:
            raise AutomatonError(f"No transition cell for ({source}, {symbol}).")
        row[symbol] = destination
        return self.issues()

    # ---------------------------------------------------------------
    def issues(self) -> List[DefinitionIssue]:
        """Report transient inconsistencies left behind by the last edit."""
        found: List[DefinitionIssue] = []
        if not self._states:
            found.append(DefinitionIssue("no-states", "Need at least one state, shocker."))
        elif self._initial_state not in self._states:
            found.append(
                DefinitionIssue(
                    "initial-state",
                    f"Initial state '{self._initial_state}' is playing hide-and-seek.",
                )
            )
        missing = sorted(self._accepting_states.difference(self._states))
        if missing:
            found.append(
                DefinitionIssue(
                    "accepting-states",
                    f"Accepting states not declared: {', '.join(missing)}.",
                )
            )
        for state, row in self._transitions.items():
            for symbol, destination in row.items():
                if destination not in self._states:
                    found.append(
                        DefinitionIssue(
                            "transition",
                            f"Transition ({state}, {symbol}) points at undeclared state '{destination}'.",
                        )
                    )
        for issue in found:
            logger.warning("Definition inconsistency: %s", issue)
        return found

    def check(self) -> None:
        """Raise when the definition is not fit to simulate."""
        found = self.issues()
        if found:
            raise AutomatonValidationError(" ".join(str(issue) for issue in found))

    def next_state(self, state: str, symbol: str) -> str:
        try:
            return self._transitions[state][symbol]
        except KeyError as exc:
            raise AutomatonError(f"No transition for ({state}, {symbol}).") from exc

    def is_accepting(self, state: str) -> bool:
        return state in self._accepting_states

    def match_symbol(self, remaining: str) -> Optional[str]:
        """Return the longest alphabet symbol that prefixes ``remaining``.

        The split is greedy: with prefix-ambiguous alphabets such as ``a, ab, bc`` the
        input ``abc`` takes ``ab`` first and never backtracks to ``a`` + ``bc``.
        """
        best: Optional[str] = None
        for symbol in self._alphabet:
            if remaining.startswith(symbol) and (best is None or len(symbol) > len(best)):
                best = symbol
        return best

    def run(self, text: str) -> Tuple[str, Optional[str]]:
        """Fold the transition function over ``text``.

        Returns the last state reached and the first out-of-alphabet symbol, if any.
        """
        current = self._initial_state
        remaining = text
        while remaining:
            symbol = self.match_symbol(remaining)
            if symbol is None:
                return current, remaining[0]
            current = self.next_state(current, symbol)
            remaining = remaining[len(symbol):]
        return current, None

    def accepts(self, text: str) -> bool:
        final, bad_symbol = self.run(text)
        return bad_symbol is None and self.is_accepting(final)


def _require_string_list(payload: Mapping[str, Any], key: str) -> List[str]:
    value = payload.get(key)
    if isinstance(value, str):
        return split_list(value)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Config field '{key}' must be a list of strings.")
    return list(value)
