from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Sequence

from .algorithms import OptionsLike, _coerce_options, run_rr
from .models import Process

logger = logging.getLogger(__name__)


@dataclass
class QuantumSearchResult:
    optimal_quantum: int
    min_cost: float
    avg_waiting: float
    avg_turnaround: float
    context_switches: int


def find_optimal_quantum(
    processes: Sequence[Process],
    options: OptionsLike = None,
    max_quantum_to_check: int = 50,
    weight_wait: float = 1.0,
    weight_switch: float = 0.5,
) -> QuantumSearchResult:
    """
    Sweep round-robin quanta 1..limit and keep the cheapest one.

    cost = weight_wait * avg_waiting + weight_switch * context_switches

    The limit is max(20, longest burst), capped at `max_quantum_to_check`.
    Runs use zero switch overhead so switches are counted, not timed. On equal
    cost the smaller quantum wins.
    """
    if max_quantum_to_check < 1:
        raise ValueError("max_quantum_to_check must be at least 1")

    base = _coerce_options(options)
    longest = max((p.burst for p in processes), default=0)
    limit = int(math.floor(min(max(20, longest), max_quantum_to_check)))

    best = QuantumSearchResult(1, math.inf, math.inf, math.inf, 0)
    for q in range(1, limit + 1):
        metrics = run_rr(processes, replace(base, quantum=q, context_switch_overhead=0)).metrics
        cost = weight_wait * metrics.avg_waiting + weight_switch * metrics.context_switches
        logger.debug("quantum %d: avg_waiting=%.2f switches=%d cost=%.2f", q, metrics.avg_waiting, metrics.context_switches, cost)
        if cost < best.min_cost:
            best = QuantumSearchResult(q, cost, metrics.avg_waiting, metrics.avg_turnaround, metrics.context_switches)

    return best
