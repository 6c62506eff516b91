"""
Batch grading of scheduler runs against expected averages and schedules.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .algorithms import run_algorithm
from .workload_io import processes_from_records

logger = logging.getLogger(__name__)

TOLERANCE = 0.01

_EXPECTED_ALIASES = {
    "avgTurnaround": "avg_turnaround",
    "avgWaiting": "avg_waiting",
    "totalTime": "total_time",
    "expectedSchedule": "expected_schedule",
}


@dataclass
class TestCase:
    # Not a pytest class despite the name.
    __test__ = False

    id: str
    algorithm: str
    processes: List[Any]
    options: Optional[Mapping[str, Any]] = None
    expected: Optional[Mapping[str, Any]] = None
    description: str = ""

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "TestCase":
        expected = mapping.get("expected")
        if expected is not None:
            expected = {_EXPECTED_ALIASES.get(k, k): v for k, v in expected.items()}
        return cls(
            id=str(mapping["id"]),
            algorithm=mapping["algorithm"],
            processes=list(mapping.get("processes", [])),
            options=mapping.get("options"),
            expected=expected,
            description=mapping.get("description", ""),
        )


@dataclass
class TestResult:
    __test__ = False

    test_case_id: str
    passed: bool
    actual_metrics: Dict[str, float] = field(default_factory=dict)
    expected_metrics: Optional[Mapping[str, Any]] = None
    diff: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class AutoGradeReport:
    results: List[TestResult]
    score: float
    total_tests: int
    passed_tests: int


def grade_case(case: TestCase) -> TestResult:
    """
    Run one case. Any failure inside the scheduler is captured on the result.
    """
    try:
        processes = processes_from_records(case.processes)
        result = run_algorithm(case.algorithm, processes, case.options)
    except Exception as exc:  # noqa: BLE001
        logger.debug("test case %s raised %r", case.id, exc)
        return TestResult(
            test_case_id=case.id,
            passed=False,
            actual_metrics={"avg_turnaround": 0.0, "avg_waiting": 0.0, "total_time": 0.0},
            expected_metrics=case.expected,
            error=str(exc) or exc.__class__.__name__,
        )

    actual = {
        "avg_turnaround": result.metrics.avg_turnaround,
        "avg_waiting": result.metrics.avg_waiting,
        "total_time": result.makespan,
    }
    expected = case.expected or {}
    passed = True
    diff: Dict[str, Any] = {}

    for key, diff_key in (
        ("avg_turnaround", "turnaround_diff"),
        ("avg_waiting", "waiting_diff"),
        ("total_time", "total_time_diff"),
    ):
        if expected.get(key) is None:
            continue
        delta = actual[key] - expected[key]
        diff[diff_key] = delta
        if abs(delta) > TOLERANCE:
            passed = False

    wanted = expected.get("expected_schedule")
    if wanted is not None:
        schedule = result.schedule()
        if list(wanted) != schedule:
            passed = False
            diff["schedule_mismatch"] = {"expected": list(wanted), "actual": schedule}

    return TestResult(
        test_case_id=case.id,
        passed=passed,
        actual_metrics=actual,
        expected_metrics=case.expected,
        diff=diff,
    )


def run_autograder(cases: Sequence[TestCase | Mapping[str, Any]]) -> AutoGradeReport:
    """
    Grade every case; the score is the pass percentage (0 for no cases).
    """
    results = [
        grade_case(c if isinstance(c, TestCase) else TestCase.from_mapping(c))
        for c in cases
    ]
    passed = sum(1 for r in results if r.passed)
    score = passed / len(results) * 100 if results else 0.0
    logger.debug("auto-grader: %d/%d passed", passed, len(results))
    return AutoGradeReport(results=results, score=score, total_tests=len(results), passed_tests=passed)


def load_test_cases(path: str | Path) -> List[TestCase]:
    """
    Read a JSON list of test cases.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError("Test case file must contain a list of test cases")

    cases: List[TestCase] = []
    for entry in raw:
        try:
            cases.append(TestCase.from_mapping(entry))
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid test case entry: {entry!r}") from exc
    return cases
