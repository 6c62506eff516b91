"""
sched_engine package.

Deterministic CPU scheduling simulation: fifteen dispatch policies sharing
one core allocation loop, with metrics, snapshots, decision logs and an
auto-grader. `sched_engine.cli` provides the command-line front end.
"""

from .algorithms import (
    ALGORITHMS,
    run_algorithm,
    run_edf,
    run_fair_share,
    run_fcfs,
    run_hrrn,
    run_ljf,
    run_lottery,
    run_lrtf,
    run_mlfq,
    run_mq,
    run_priority,
    run_priority_preemptive,
    run_rms,
    run_rr,
    run_sjf,
    run_srtf,
)
from .autograder import AutoGradeReport, TestCase, TestResult, load_test_cases, run_autograder
from .metrics import calculate_metrics
from .models import (
    CS,
    IDLE,
    DecisionLog,
    EnergyConfig,
    EnergyMetrics,
    GanttEvent,
    Metrics,
    Process,
    SimulationOptions,
    SimulationResult,
    Snapshot,
)
from .optimizer import QuantumSearchResult, find_optimal_quantum
from .snapshots import generate_snapshots
from .validators import ValidationResult, validate_processes

__all__ = [
    "ALGORITHMS",
    "AutoGradeReport",
    "CS",
    "DecisionLog",
    "EnergyConfig",
    "EnergyMetrics",
    "GanttEvent",
    "IDLE",
    "Metrics",
    "Process",
    "QuantumSearchResult",
    "SimulationOptions",
    "SimulationResult",
    "Snapshot",
    "TestCase",
    "TestResult",
    "ValidationResult",
    "calculate_metrics",
    "find_optimal_quantum",
    "generate_snapshots",
    "load_test_cases",
    "run_algorithm",
    "run_autograder",
    "run_edf",
    "run_fair_share",
    "run_fcfs",
    "run_hrrn",
    "run_ljf",
    "run_lottery",
    "run_lrtf",
    "run_mlfq",
    "run_mq",
    "run_priority",
    "run_priority_preemptive",
    "run_rms",
    "run_rr",
    "run_sjf",
    "run_srtf",
    "validate_processes",
]
