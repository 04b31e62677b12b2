from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence

from .automata import AutomatonModel
from .simulation import OutcomeKind, SimulationSnapshot, simulate

EXPECTED_ALIASES = {
    "accept": OutcomeKind.ACCEPTED,
    "accepted": OutcomeKind.ACCEPTED,
    "reject": OutcomeKind.REJECTED,
    "rejected": OutcomeKind.REJECTED,
    "error": OutcomeKind.SYMBOL_ERROR,
    "symbol-error": OutcomeKind.SYMBOL_ERROR,
}


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    text: str
    expected: OutcomeKind
    label: str = ""

    @staticmethod
    def from_raw(text: str, expected: Any, label: str = "") -> "TestCase":
        if isinstance(expected, bool):
            kind = OutcomeKind.ACCEPTED if expected else OutcomeKind.REJECTED
        elif isinstance(expected, str) and expected.strip().lower() in EXPECTED_ALIASES:
            kind = EXPECTED_ALIASES[expected.strip().lower()]
        else:
            raise ValueError(
                f"Expected verdict must be accept, reject or error, got {expected!r}."
            )
        return TestCase(text=text, expected=kind, label=label)


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    case: TestCase
    snapshot: SimulationSnapshot

    @property
    def actual(self) -> OutcomeKind:
        return self.snapshot.outcome.kind

    @property
    def passed(self) -> bool:
        return self.actual is self.case.expected


def run_test_cases(automaton: AutomatonModel, test_cases: Sequence[TestCase]) -> List[TestResult]:
    results: List[TestResult] = []
    for case in test_cases:
        results.append(TestResult(case=case, snapshot=simulate(automaton, case.text)))
    return results


def summarize_results(results: Sequence[TestResult]) -> dict[str, int]:
    summary = {"total": len(results), "passed": 0, "failed": 0}
    for result in results:
        if result.passed:
            summary["passed"] += 1
        else:
            summary["failed"] += 1
    return summary


def load_test_cases(data: Any) -> List[TestCase]:
    if data is None:
        return []
    if isinstance(data, dict):
        entries = data.get("cases", [])
    else:
        entries = data
    if not isinstance(entries, list):
        raise ValueError("Test cases must be provided as a list.")
    cases: List[TestCase] = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValueError("Each test case must be an object with 'input' and 'expected'.")
        text = entry.get("input", "")
        if not isinstance(text, str):
            raise ValueError("Test case 'input' must be a string.")
        label = entry.get("label") or f"case {index}"
        cases.append(TestCase.from_raw(text, entry.get("expected", False), label))
    return cases
