"""
Tests for the command-line front end, batch test cases and DOT export.
"""

import contextlib
import io
import json
import os
import tempfile
import unittest

from dfa_stepper.analysis import TestCase as CaseSpec
from dfa_stepper.analysis import load_test_cases, run_test_cases, summarize_results
from dfa_stepper.cli import build_session_from_payload, run, simulate_input
from dfa_stepper.graphviz import automaton_to_dot
from dfa_stepper.layout import LayoutEngine
from dfa_stepper.simulation import OutcomeKind, SimulationStatus, simulate

from .helpers import example_automaton


def run_cli(argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = run(argv)
    return code, out.getvalue(), err.getvalue()


class TestAnalysis(unittest.TestCase):
    def test_verdict_aliases(self):
        self.assertIs(CaseSpec.from_raw("1", True).expected, OutcomeKind.ACCEPTED)
        self.assertIs(CaseSpec.from_raw("1", "reject").expected, OutcomeKind.REJECTED)
        self.assertIs(CaseSpec.from_raw("1", "Error").expected, OutcomeKind.SYMBOL_ERROR)
        with self.assertRaises(ValueError):
            CaseSpec.from_raw("1", "maybe")

    def test_run_and_summarize(self):
        cases = load_test_cases(
            [
                {"input": "10", "expected": "accept"},
                {"input": "11", "expected": "reject", "label": "three"},
                {"input": "12", "expected": "error"},
                {"input": "0", "expected": True},
            ]
        )
        self.assertEqual(cases[0].label, "case 1")
        self.assertEqual(cases[1].label, "three")
        results = run_test_cases(example_automaton(), cases)
        self.assertEqual([r.passed for r in results], [True, True, True, False])
        self.assertEqual(summarize_results(results), {"total": 4, "passed": 3, "failed": 1})

    def test_malformed_cases(self):
        with self.assertRaises(ValueError):
            load_test_cases("nope")
        with self.assertRaises(ValueError):
            load_test_cases([{"input": 5, "expected": True}])
        self.assertEqual(load_test_cases(None), [])
        self.assertEqual(len(load_test_cases({"cases": [{"input": "1"}]})), 1)


class TestDot(unittest.TestCase):
    def test_plain_graph(self):
        dot = automaton_to_dot(example_automaton())
        self.assertIn('__start__ -> "q0";', dot)
        self.assertIn('"q2" [shape=doublecircle];', dot)
        self.assertIn('"q1" -> "q2" [label="0"];', dot)
        self.assertNotIn("color=", dot)

    def test_highlights_current_run(self):
        automaton = example_automaton()
        snapshot = simulate(automaton, "11")
        positions = LayoutEngine().positions(automaton.states, 800, 600)
        dot = automaton_to_dot(automaton, positions=positions, snapshot=snapshot)
        self.assertIn('"q1" -> "q0" [label="1", color="red", fontcolor="red", penwidth=2];', dot)
        self.assertIn('"q0" -> "q1" [label="1", color="orange"];', dot)
        self.assertIn('fillcolor="palegreen"', dot.split('"q0" [')[1].split("\n")[0])
        self.assertIn('pos="', dot)

    def test_labels_are_escaped(self):
        automaton = example_automaton()
        automaton.set_states(['say "hi"'])
        self.assertIn('"say \\"hi\\""', automaton_to_dot(automaton))


class TestSession(unittest.TestCase):
    def test_build_session_from_payload(self):
        payload = example_automaton().to_payload()
        payload["test_cases"] = [{"input": "10", "expected": "accept"}]
        session = build_session_from_payload(payload)
        self.assertEqual(session.automaton.states, ("q0", "q1", "q2"))
        self.assertEqual(len(session.test_cases), 1)
        self.assertEqual(session.issues, [])

    def test_simulate_input_prints_steps(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            snapshot = simulate_input(example_automaton(), "101")
        self.assertEqual(snapshot.status, SimulationStatus.COMPLETED)
        text = out.getvalue()
        self.assertIn("1. d(q0, 1) -> q1", text)
        self.assertIn("3. d(q2, 1) -> q2", text)
        self.assertIn('Success! Input "101" is accepted.', text)

    def test_simulate_input_auto_play(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            snapshot = simulate_input(example_automaton(), "11", play=True, speed_ms=100)
        self.assertEqual(snapshot.outcome.kind, OutcomeKind.REJECTED)
        self.assertIn("2. d(q1, 1) -> q0", out.getvalue())


class TestRun(unittest.TestCase):
    def test_default_automaton_with_input(self):
        code, out, err = run_cli(["--input", "102"])
        self.assertEqual(code, 0)
        self.assertIn("Automaton Summary", out)
        self.assertIn("Symbol '2' is not in the alphabet.", out)

    def test_empty_input_is_reported(self):
        code, out, err = run_cli(["--input", ""])
        self.assertEqual(code, 1)
        self.assertIn("Please enter an input string to test.", err)

    def test_editing_flags(self):
        code, out, err = run_cli(["--states", "a,b", "--alphabet", "x", "--accepting", "b", "--input", "x"])
        self.assertEqual(code, 0)
        self.assertIn("States: a, b", out)
        self.assertIn("Rejected!", out)

    def test_inconsistent_initial_state_fails_simulation(self):
        code, out, err = run_cli(["--initial", "ghost", "--input", "1"])
        self.assertEqual(code, 1)
        self.assertIn("Warning: Initial state 'ghost'", out)
        self.assertIn("Error:", err)

    def test_config_tests_and_dot(self):
        payload = example_automaton().to_payload()
        payload["test_cases"] = [
            {"input": "10", "expected": "accept"},
            {"input": "11", "expected": "accept"},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            config = os.path.join(tmp, "dfa.json")
            with open(config, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            code, out, err = run_cli(
                ["--config", config, "--input", "10", "--dot", "--output-dir", tmp, "--base-name", "run"]
            )
            self.assertEqual(code, 0)
            self.assertIn("Passed 1 of 2 test cases.", out)
            self.assertIn("[FAIL] case 2: 11 -> expected accepted, got rejected", out)
            with open(os.path.join(tmp, "run_dfa.dot"), encoding="utf-8") as handle:
                self.assertIn('color="red"', handle.read())

    def test_missing_config(self):
        code, out, err = run_cli(["--config", "/nonexistent/dfa.json"])
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)


if __name__ == "__main__":
    unittest.main()
