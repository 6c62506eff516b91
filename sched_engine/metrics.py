from __future__ import annotations

import math
from typing import Dict, List, Sequence

from .models import CS, IDLE, EnergyMetrics, GanttEvent, Metrics, Number, Process, SimulationOptions


def calculate_metrics(events: Sequence[GanttEvent], processes: Sequence[Process], options: SimulationOptions) -> Metrics:
    """
    Derive per-process and system metrics from a finished event stream.

    Per-process values come from the work events only: completion is the
    latest end, response the earliest start. Utilization and energy use the
    whole capacity (makespan x cores).
    """
    if not processes:
        return Metrics()

    completion: Dict[str, Number] = {}
    first_run: Dict[str, Number] = {}
    for e in events:
        if not e.is_work:
            continue
        if e.end > completion.get(e.pid, -1):
            completion[e.pid] = e.end
        if e.pid not in first_run or e.start < first_run[e.pid]:
            first_run[e.pid] = e.start

    metrics = Metrics()
    for p in processes:
        if p.pid not in completion:
            continue
        metrics.completion[p.pid] = completion[p.pid]
        metrics.turnaround[p.pid] = completion[p.pid] - p.arrival
        metrics.waiting[p.pid] = metrics.turnaround[p.pid] - p.burst
        metrics.response[p.pid] = first_run[p.pid] - p.arrival

    turnaround = list(metrics.turnaround.values())
    waiting = list(metrics.waiting.values())
    response = list(metrics.response.values())

    metrics.avg_turnaround = _mean(turnaround)
    metrics.avg_waiting = _mean(waiting)
    metrics.avg_response = _mean(response)
    metrics.p95_turnaround = percentile(turnaround, 95)
    metrics.p95_waiting = percentile(waiting, 95)
    metrics.p95_response = percentile(response, 95)
    metrics.std_dev_turnaround = std_dev(turnaround)
    metrics.std_dev_waiting = std_dev(waiting)
    metrics.std_dev_response = std_dev(response)

    metrics.context_switches = count_context_switches(events, options)

    core_count = options.core_count
    makespan = max((e.end for e in events), default=0)
    active_time = sum(e.duration for e in events if e.is_work)
    switch_time = sum(e.duration for e in events if e.pid == CS)
    capacity = makespan * core_count
    idle_time = max(capacity - active_time - switch_time, 0)

    metrics.cpu_utilization = active_time / capacity * 100 if capacity > 0 else 0.0

    energy = options.energy_config
    active_energy = active_time * energy.active_watts
    idle_energy = idle_time * energy.idle_watts
    switch_energy = metrics.context_switches * energy.switch_joules
    metrics.energy = EnergyMetrics(
        total_energy=active_energy + idle_energy + switch_energy,
        active_energy=active_energy,
        idle_energy=idle_energy,
        switch_energy=switch_energy,
    )
    return metrics


def count_context_switches(events: Sequence[GanttEvent], options: SimulationOptions) -> int:
    """
    With a switch overhead every CS interval counts; otherwise count pid
    changes between neighbouring events on the same core, ignoring idle gaps.
    """
    if options.context_switch_overhead > 0:
        return sum(1 for e in events if e.pid == CS)

    switches = 0
    by_core: Dict[int, List[GanttEvent]] = {}
    for e in events:
        by_core.setdefault(e.core, []).append(e)
    for core_events in by_core.values():
        core_events.sort(key=lambda e: e.start)
        for prev, nxt in zip(core_events, core_events[1:]):
            if prev.pid != nxt.pid and prev.pid != IDLE and nxt.pid != IDLE:
                switches += 1
    return switches


def percentile(values: Sequence[Number], pct: float) -> Number:
    """Nearest-rank percentile."""
    if not values:
        return 0
    ordered = sorted(values)
    index = math.ceil(pct / 100 * len(ordered)) - 1
    return ordered[max(0, min(index, len(ordered) - 1))]


def std_dev(values: Sequence[Number]) -> float:
    """Population standard deviation."""
    if not values:
        return 0.0
    avg = _mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def _mean(values: Sequence[Number]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_metrics(metrics: Metrics) -> dict:
    """
    Return averages of the key per-process metrics for quick comparison.
    """
    return {
        "avg_waiting": metrics.avg_waiting,
        "avg_turnaround": metrics.avg_turnaround,
        "avg_response": metrics.avg_response,
    }
