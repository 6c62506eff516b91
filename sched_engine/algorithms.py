from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Sequence, Union

from .engine import simulate
from .models import Number, Process, SimulationOptions, SimulationResult
from .policies import (
    EDFPolicy,
    FairSharePolicy,
    FCFSPolicy,
    HRRNPolicy,
    LJFPolicy,
    LotteryPolicy,
    LRTFPolicy,
    MLFQPolicy,
    MultilevelQueuePolicy,
    PreemptivePriorityPolicy,
    PriorityPolicy,
    RMSPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    SRTFPolicy,
)

OptionsLike = Union[SimulationOptions, Mapping[str, Any], None]


def _coerce_options(options: OptionsLike) -> SimulationOptions:
    if isinstance(options, SimulationOptions):
        return options
    return SimulationOptions.from_mapping(options)


def _run(policy_cls, processes: Sequence[Process], options: OptionsLike) -> SimulationResult:
    opts = _coerce_options(options)
    return simulate(processes, opts, policy_cls(opts))


def run_fcfs(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    First-Come First-Serve (non-preemptive).
    """
    return _run(FCFSPolicy, processes, options)


def run_sjf(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    Shortest Job First (non-preemptive).

    At each decision point, among processes that have arrived and are not yet
    completed, choose the one with the smallest burst time.
    """
    return _run(SJFPolicy, processes, options)


def run_srtf(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    Shortest Remaining Time First (preemptive SJF).
    """
    return _run(SRTFPolicy, processes, options)


def run_rr(processes: Sequence[Process], options: Union[OptionsLike, Number] = None) -> SimulationResult:
    """
    Round-robin scheduling.

    `options` may be a bare number, taken as the time quantum.
    """
    if isinstance(options, (int, float)) and not isinstance(options, bool):
        options = SimulationOptions(quantum=options)
    return _run(RoundRobinPolicy, processes, options)


def run_priority(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    Non-preemptive priority scheduling (lower number = higher priority).
    """
    return _run(PriorityPolicy, processes, options)


def run_priority_preemptive(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(PreemptivePriorityPolicy, processes, options)


def run_hrrn(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(HRRNPolicy, processes, options)


def run_ljf(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(LJFPolicy, processes, options)


def run_lrtf(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(LRTFPolicy, processes, options)


def run_mq(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    Two-level multilevel queue: priority 1 processes share a round-robin
    queue, everything else waits in an FCFS queue below it.
    """
    return _run(MultilevelQueuePolicy, processes, options)


def run_mlfq(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    """
    Multi-Level Feedback Queue with three levels.

    - Q0: quantum 2
    - Q1: quantum 4
    - Q2: runs to completion

    New arrivals enter Q0. A process that uses up its quantum moves one level
    down; a process waiting in a higher queue preempts a lower one.
    """
    return _run(MLFQPolicy, processes, options)


def run_fair_share(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(FairSharePolicy, processes, options)


def run_lottery(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(LotteryPolicy, processes, options)


def run_rms(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(RMSPolicy, processes, options)


def run_edf(processes: Sequence[Process], options: OptionsLike = None) -> SimulationResult:
    return _run(EDFPolicy, processes, options)


ALGORITHMS: Dict[str, Callable[..., SimulationResult]] = {
    "fcfs": run_fcfs,
    "sjf": run_sjf,
    "srtf": run_srtf,
    "rr": run_rr,
    "priority": run_priority,
    "priority_pe": run_priority_preemptive,
    "hrrn": run_hrrn,
    "ljf": run_ljf,
    "lrtf": run_lrtf,
    "mq": run_mq,
    "mlfq": run_mlfq,
    "fair_share": run_fair_share,
    "lottery": run_lottery,
    "rms": run_rms,
    "edf": run_edf,
}


def normalize_algorithm_name(name: str) -> str:
    """Map `PRIORITY_PE`, `fair-share`, `Fair Share` and friends onto registry keys."""
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def run_algorithm(
    name: str, processes: Sequence[Process], options: OptionsLike = None
) -> SimulationResult:
    """
    Dispatch to the requested algorithm by name.
    """
    key = normalize_algorithm_name(name)
    if key not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm '{name}' (choose from: {', '.join(ALGORITHMS)})")

    func = ALGORITHMS[key]
    return func(processes, options)
