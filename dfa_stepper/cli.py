from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from .analysis import TestCase, load_test_cases, run_test_cases, summarize_results
from .automata import AutomatonError, AutomatonModel, DefinitionIssue
from .graphviz import write_dot
from .layout import LayoutEngine
from .simulation import (
    DEFAULT_SPEED_MS,
    SimulationEngine,
    SimulationError,
    SimulationSnapshot,
    SimulationStatus,
    ThreadingScheduler,
    clamp_speed,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
EMPTY_INPUT_LABEL = "<empty>"
PLAY_TIMEOUT_SLACK_S = 5.0


@dataclass
class Session:
    automaton: AutomatonModel
    test_cases: List[TestCase] = field(default_factory=list)
    issues: List[DefinitionIssue] = field(default_factory=list)


def build_session_from_payload(payload: Mapping[str, Any]) -> Session:
    if not isinstance(payload, Mapping):
        raise ValueError("Config payload must be a mapping.")
    automaton = AutomatonModel.from_payload(payload)
    test_cases = load_test_cases(payload.get("test_cases"))
    return Session(automaton=automaton, test_cases=test_cases, issues=automaton.issues())


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Step a deterministic finite automaton through an input string."
    )
    parser.add_argument("--config", help="Path to a JSON file that defines the automaton.")
    parser.add_argument("--states", help="Comma-separated state names (replaces the state set).")
    parser.add_argument("--alphabet", help="Comma-separated alphabet symbols.")
    parser.add_argument("--initial", help="Initial state.")
    parser.add_argument("--accepting", help="Comma-separated accepting states.")
    parser.add_argument("--input", help="Input string to simulate step by step.")
    parser.add_argument(
        "--play",
        action="store_true",
        help="Auto-play the simulation with a delay between steps.",
    )
    parser.add_argument(
        "--speed",
        type=int,
        default=DEFAULT_SPEED_MS,
        help="Delay between auto-played steps in ms (100-1000, 100 ms increments).",
    )
    parser.add_argument("--dot", action="store_true", help="Write a DOT graph of the run.")
    parser.add_argument(
        "--output-dir",
        default="artifacts",
        help="Directory where DOT graph files will be written.",
    )
    parser.add_argument(
        "--base-name",
        default="automaton",
        help="Base filename used for generated DOT files.",
    )
    parser.add_argument("--width", type=float, default=800.0, help="Layout surface width.")
    parser.add_argument("--height", type=float, default=600.0, help="Layout surface height.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity to stderr.")
    return parser.parse_args(argv)


def run(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    try:
        session = _build_session(args)
        _display_summary(session)
        _run_tests(session)
        snapshot: Optional[SimulationSnapshot] = None
        if args.input is not None:
            snapshot = simulate_input(
                session.automaton, args.input, play=args.play, speed_ms=args.speed
            )
    except KeyboardInterrupt:
        print("\nAborted by user.", file=sys.stderr)
        return 130
    except (
        AutomatonError,
        SimulationError,
        ValueError,
        FileNotFoundError,
        json.JSONDecodeError,
    ) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.dot:
        path = write_graph(
            session.automaton,
            args.output_dir,
            args.base_name,
            snapshot=snapshot,
            size=(args.width, args.height),
        )
        print("\nDOT file written:")
        print(f"  {path}")
    return 0


def _build_session(args: argparse.Namespace) -> Session:
    if args.config:
        session = _build_from_config(Path(args.config))
    else:
        automaton = AutomatonModel.default()
        session = Session(automaton=automaton)
    automaton = session.automaton
    if args.states is not None:
        session.issues = automaton.set_states(args.states)
    if args.alphabet is not None:
        session.issues = automaton.set_alphabet(args.alphabet)
    if args.initial is not None:
        session.issues = automaton.set_initial_state(args.initial)
    if args.accepting is not None:
        session.issues = automaton.set_accepting_states(args.accepting)
    return session


def _build_from_config(path: Path) -> Session:
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError("Config file must define a JSON object.")
    return build_session_from_payload(payload)


def _display_summary(session: Session) -> None:
    automaton = session.automaton
    print("Automaton Summary")
    print(f"  States: {', '.join(automaton.states) or '<none>'}")
    print(f"  Alphabet: {', '.join(automaton.alphabet) or '<empty>'}")
    print(f"  Initial state: {automaton.initial_state}")
    accepting = [s for s in automaton.states if automaton.is_accepting(s)]
    print(f"  Accepting states: {', '.join(accepting) or '<none>'}")
    print("  Transition function:")
    for state in automaton.states:
        row = automaton.transitions.get(state, {})
        parts = [f"{symbol}->{row[symbol]}" for symbol in automaton.alphabet if symbol in row]
        print(f"    {state}: {', '.join(parts) or '<none>'}")
    for issue in session.issues:
        print(f"  Warning: {issue}")


def _run_tests(session: Session):
    if not session.test_cases:
        return []
    print("\nRunning test cases...")
    results = run_test_cases(session.automaton, session.test_cases)
    summary = summarize_results(results)
    print(f"  Passed {summary['passed']} of {summary['total']} test cases.")
    for result in results:
        text = result.case.text or EMPTY_INPUT_LABEL
        status = "PASS" if result.passed else "FAIL"
        label_prefix = f"{result.case.label}: " if result.case.label else ""
        print(
            f"    [{status}] {label_prefix}{text} -> expected {result.case.expected.value}, "
            f"got {result.actual.value}"
        )
    return results


def format_step(snapshot: SimulationSnapshot, index: int) -> str:
    before, after = snapshot.trace[index - 1], snapshot.trace[index]
    return f"  {index}. d({before.state}, {after.symbol}) -> {after.state}   [{after.consumed}|{after.remaining}]"


def simulate_input(
    automaton: AutomatonModel,
    text: str,
    *,
    play: bool = False,
    speed_ms: int = DEFAULT_SPEED_MS,
) -> SimulationSnapshot:
    """Run ``text`` through a fresh engine, printing each step as it happens."""
    scheduler = ThreadingScheduler() if play else None
    engine = SimulationEngine(automaton, scheduler=scheduler, speed_ms=clamp_speed(speed_ms))
    done = threading.Event()
    printed = [0]

    def on_change(snapshot: SimulationSnapshot) -> None:
        while printed[0] < snapshot.cursor:
            printed[0] += 1
            print(format_step(snapshot, printed[0]))
        if snapshot.status is SimulationStatus.COMPLETED:
            done.set()

    engine.subscribe(on_change)
    print(f"\nSimulating {text!r} from {automaton.initial_state}:")
    engine.submit(text)
    if play:
        budget = (len(text) + 2) * engine.speed_ms / 1000.0 + PLAY_TIMEOUT_SLACK_S
        if not done.wait(budget):
            logger.warning("Auto-play did not finish within %.1f s; stopping.", budget)
            engine.stop()
    else:
        while engine.status is SimulationStatus.RUNNING:
            engine.step()
    snapshot = engine.snapshot()
    print(f"  {snapshot.message}")
    return snapshot


def write_graph(
    automaton: AutomatonModel,
    output_dir: Path | str,
    base_name: Optional[str],
    *,
    snapshot: Optional[SimulationSnapshot] = None,
    size: tuple[float, float] = (800.0, 600.0),
) -> Path:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    name = (base_name or "automaton").strip() or "automaton"
    positions = LayoutEngine().positions(automaton.states, *size)
    path = out_dir / f"{name}_dfa.dot"
    write_dot(automaton, str(path), positions=positions, snapshot=snapshot)
    return path.resolve()
