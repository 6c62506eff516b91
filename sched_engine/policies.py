"""
Dispatch policies plugged into the core allocation loop.

A policy decides which ready process a free core takes, how long it may run
before the loop asks again, and whether a running process should give way.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Set, Tuple

from .engine import EPSILON, PRECISION, CoreState, ProcessState
from .models import Number, SimulationOptions

TICK = 1


def _priority_value(proc: ProcessState) -> Number:
    # Missing priority ranks below every explicit one.
    return proc.priority if proc.priority is not None else math.inf


def _head_of_highest_level(ready: Sequence[ProcessState]) -> Optional[ProcessState]:
    """First ready process of the lowest-numbered level; level 0 is the highest."""
    if not ready:
        return None
    return min(enumerate(ready), key=lambda item: (item[1].level, item[0]))[1]


def _fmt(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


class DispatchPolicy(ABC):
    """Base strategy consumed by `engine.Simulation`."""

    name = ""
    # Merge a fresh dispatch into an adjacent event of the same pid.
    coalesce = True

    def __init__(self, options: SimulationOptions) -> None:
        self.options = options

    @abstractmethod
    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        """Pick the next process for `core` from the ready list."""

    @abstractmethod
    def explain(self, proc: ProcessState, now: Number) -> str:
        """Justification for the last selection, quoting the winning value."""

    def on_admit(self, proc: ProcessState, now: Number) -> None:
        """Hook invoked when a process arrives."""

    def admission_note(self, proc: ProcessState) -> str:
        return ""

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        """Longest run before the loop reconsiders; None means run to completion."""
        return None

    def should_preempt(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> bool:
        return False

    def explain_preemption(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> str:
        return f"{running.pid} gives way to a better ready process."

    def victim_rank(self, running: ProcessState, now: Number) -> Tuple:
        """Larger means a worse claim on its core; the worst running process is preempted first."""
        return ()

    def requeue_front(self, proc: ProcessState) -> bool:
        """Whether a preempted process keeps the head of its queue."""
        return False

    def on_slice_expired(self, proc: ProcessState, now: Number) -> Optional[str]:
        """Hook invoked when a slice ends unfinished; may return a step-log note."""
        return None

    def on_run(self, proc: ProcessState, duration: Number) -> None:
        """Hook invoked after `proc` ran for `duration`."""


class RankedPolicy(DispatchPolicy):
    """Selects the ready process with the smallest rank tuple."""

    @abstractmethod
    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        ...

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        if not ready:
            return None
        return min(ready, key=lambda p: self.rank(p, now))

    def victim_rank(self, running: ProcessState, now: Number) -> Tuple:
        return self.rank(running, now)


class TickPolicy(RankedPolicy):
    """Re-selects among all ready processes after every tick."""

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        return TICK


class FCFSPolicy(RankedPolicy):
    name = "FCFS"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it arrived earliest (t={_fmt(proc.arrival)})."


class SJFPolicy(RankedPolicy):
    name = "SJF"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (proc.burst, proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the shortest burst time ({_fmt(proc.burst)})."


class LJFPolicy(RankedPolicy):
    name = "LJF"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (-proc.burst, proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the longest burst time ({_fmt(proc.burst)})."


class SRTFPolicy(RankedPolicy):
    name = "SRTF"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (proc.remaining, proc.arrival, proc.order)

    def should_preempt(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> bool:
        best = self.select(ready, None, now)
        return best is not None and best.remaining < running.remaining

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the shortest remaining time ({_fmt(proc.remaining)})."

    def explain_preemption(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> str:
        best = self.select(ready, None, now)
        return (
            f"{best.pid} has shorter remaining time "
            f"({_fmt(best.remaining)} < {_fmt(running.remaining)})."
        )


class LRTFPolicy(TickPolicy):
    name = "LRTF"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (-proc.remaining, proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the longest remaining time ({_fmt(proc.remaining)})."


class PriorityPolicy(RankedPolicy):
    """Lower number means higher priority."""

    name = "PRIORITY"

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (_priority_value(proc), proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the highest priority (priority {_fmt(_priority_value(proc))})."


class PreemptivePriorityPolicy(PriorityPolicy):
    name = "PRIORITY_PE"

    def should_preempt(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> bool:
        best = self.select(ready, None, now)
        return best is not None and _priority_value(best) < _priority_value(running)

    def explain_preemption(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> str:
        best = self.select(ready, None, now)
        return (
            f"{best.pid} has higher priority "
            f"({_fmt(_priority_value(best))} < {_fmt(_priority_value(running))})."
        )


class HRRNPolicy(RankedPolicy):
    """Highest response ratio next: (waiting + burst) / burst."""

    name = "HRRN"

    @staticmethod
    def response_ratio(proc: ProcessState, now: Number) -> float:
        return (now - proc.arrival + proc.burst) / proc.burst

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (-self.response_ratio(proc, now), proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        wait = now - proc.arrival
        ratio = self.response_ratio(proc, now)
        return (
            f"Selected {proc.pid} with the highest response ratio: "
            f"({_fmt(wait)} + {_fmt(proc.burst)}) / {_fmt(proc.burst)} = {ratio:.2f}"
        )


class RoundRobinPolicy(DispatchPolicy):
    name = "RR"
    coalesce = False

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        return ready[0] if ready else None

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        return self.options.quantum

    def on_slice_expired(self, proc: ProcessState, now: Number) -> Optional[str]:
        return f"Process {proc.pid} quantum expired, moving to back of queue"

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} from head of queue. Quantum: {_fmt(self.options.quantum)}."


class MultilevelQueuePolicy(DispatchPolicy):
    """
    Two fixed queues: priority 1 goes to the high queue (round robin),
    everything else to the low queue (FCFS). The low queue only runs while
    the high queue is empty.
    """

    name = "MQ"
    coalesce = False
    HIGH, LOW = 0, 1

    def on_admit(self, proc: ProcessState, now: Number) -> None:
        proc.level = self.HIGH if proc.priority == 1 else self.LOW

    def admission_note(self, proc: ProcessState) -> str:
        return " -> Queue 1 (High/RR)" if proc.level == self.HIGH else " -> Queue 2 (Low/FCFS)"

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        return _head_of_highest_level(ready)

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        return self.options.quantum if proc.level == self.HIGH else None

    def should_preempt(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> bool:
        return running.level == self.LOW and any(p.level == self.HIGH for p in ready)

    def victim_rank(self, running: ProcessState, now: Number) -> Tuple:
        return (running.level,)

    def requeue_front(self, proc: ProcessState) -> bool:
        return True

    def on_slice_expired(self, proc: ProcessState, now: Number) -> Optional[str]:
        return f"Process {proc.pid} quantum expired, moving to back of Queue 1"

    def explain(self, proc: ProcessState, now: Number) -> str:
        if proc.level == self.HIGH:
            return f"Selected {proc.pid} from Queue 1 (RR, quantum {_fmt(self.options.quantum)}): high priority queue has processes."
        return f"Selected {proc.pid} from Queue 2 (FCFS): high priority queue is empty."

    def explain_preemption(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> str:
        return f"A Queue 1 process is ready; {running.pid} from Queue 2 is preempted."


class MLFQPolicy(DispatchPolicy):
    """
    Three-level feedback queue. Every process enters level 0; using up a
    level's quantum without finishing demotes it one level. There is no
    promotion.
    """

    name = "MLFQ"
    LOWEST = 2

    def __init__(self, options: SimulationOptions) -> None:
        super().__init__(options)
        self.quanta = options.mlfq_quanta

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        return _head_of_highest_level(ready)

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        budget = self.quanta[proc.level]
        if math.isinf(budget):
            return None
        return budget - proc.slice_used

    def on_run(self, proc: ProcessState, duration: Number) -> None:
        proc.slice_used = round(proc.slice_used + duration, PRECISION)

    def on_slice_expired(self, proc: ProcessState, now: Number) -> Optional[str]:
        if proc.slice_used + EPSILON < self.quanta[proc.level]:
            return None
        old = proc.level
        proc.level = min(old + 1, self.LOWEST)
        proc.slice_used = 0
        return f"Process {proc.pid} used its Q{old} quantum, demoted to Q{proc.level}"

    def should_preempt(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> bool:
        return any(p.level < running.level for p in ready)

    def victim_rank(self, running: ProcessState, now: Number) -> Tuple:
        return (running.level,)

    def requeue_front(self, proc: ProcessState) -> bool:
        return True

    def explain(self, proc: ProcessState, now: Number) -> str:
        budget = self.quanta[proc.level]
        quantum = "unbounded" if math.isinf(budget) else _fmt(budget)
        return f"Selected {proc.pid} from highest non-empty queue Q{proc.level} (quantum {quantum})."

    def explain_preemption(self, running: ProcessState, ready: Sequence[ProcessState], now: Number) -> str:
        best = self.select(ready, None, now)
        return f"{best.pid} is waiting in Q{best.level}, above {running.pid} in Q{running.level}."


class FairSharePolicy(DispatchPolicy):
    """
    Serves the group with the lowest served-time / weight ratio, earliest
    arrival first inside that group.
    """

    name = "FAIR_SHARE"
    DEFAULT_GROUP = "default"

    def __init__(self, options: SimulationOptions) -> None:
        super().__init__(options)
        self.served: Dict[str, Number] = {}
        self.weights: Dict[str, float] = {}
        self._group_order: Dict[str, int] = {}
        self._declared: Set[str] = set()
        self._last_ratio = 0.0

    def group_of(self, proc: ProcessState) -> str:
        return proc.spec.share_group or self.DEFAULT_GROUP

    def on_admit(self, proc: ProcessState, now: Number) -> None:
        group = self.group_of(proc)
        self.served.setdefault(group, 0)
        self._group_order.setdefault(group, len(self._group_order))
        self.weights.setdefault(group, 1)
        # The first member that declares a weight fixes it for the group.
        weight = proc.spec.share_weight
        if weight and weight > 0 and group not in self._declared:
            self.weights[group] = weight
            self._declared.add(group)

    def ratio(self, group: str) -> float:
        return self.served[group] / self.weights[group]

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        if not ready:
            return None
        groups = {self.group_of(p) for p in ready}
        group = min(groups, key=lambda g: (self.ratio(g), self._group_order[g]))
        self._last_ratio = self.ratio(group)
        members = [p for p in ready if self.group_of(p) == group]
        return min(members, key=lambda p: (p.arrival, p.order))

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        return self.options.fair_share_quantum

    def on_run(self, proc: ProcessState, duration: Number) -> None:
        self.served[self.group_of(proc)] += duration

    def explain(self, proc: ProcessState, now: Number) -> str:
        group = self.group_of(proc)
        return (
            f"Selected {proc.pid} from group '{group}' with the lowest served/weight ratio "
            f"({_fmt(self.served[group])}/{_fmt(self.weights[group])} = {self._last_ratio:.2f})."
        )


class LcgRandom:
    """Seeded linear congruential generator returning floats in [0, 1)."""

    MULTIPLIER = 1664525
    INCREMENT = 1013904223
    MODULUS = 2 ** 32

    def __init__(self, seed: int) -> None:
        self.state = seed % self.MODULUS

    def next(self) -> float:
        self.state = (self.MULTIPLIER * self.state + self.INCREMENT) % self.MODULUS
        return self.state / self.MODULUS


class LotteryPolicy(DispatchPolicy):
    name = "LOTTERY"

    def __init__(self, options: SimulationOptions) -> None:
        super().__init__(options)
        self.rng = LcgRandom(options.random_seed)
        self._last_draw: Tuple[int, int] = (0, 0)

    @staticmethod
    def tickets(proc: ProcessState) -> int:
        t = proc.spec.tickets
        return t if t and t > 0 else 1

    def select(self, ready: Sequence[ProcessState], core: Optional[CoreState], now: Number) -> Optional[ProcessState]:
        if not ready:
            return None
        ordered = sorted(ready, key=lambda p: (p.arrival, p.order))
        total = sum(self.tickets(p) for p in ordered)
        pick = math.floor(self.rng.next() * total)
        self._last_draw = (pick, total)

        cumulative = 0
        for candidate in ordered:
            cumulative += self.tickets(candidate)
            if pick < cumulative:
                return candidate
        return ordered[0]

    def slice_length(self, proc: ProcessState) -> Optional[Number]:
        return TICK

    def explain(self, proc: ProcessState, now: Number) -> str:
        pick, total = self._last_draw
        return f"Selected {proc.pid} by drawing ticket {pick} of {total} ({self.tickets(proc)} held)."


class RMSPolicy(TickPolicy):
    """Rate-monotonic: the shortest period has the highest static priority."""

    name = "RMS"

    @staticmethod
    def effective_period(proc: ProcessState) -> Number:
        period = proc.spec.period
        return period if period and period > 0 else proc.burst

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (self.effective_period(proc), proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the shortest period ({_fmt(self.effective_period(proc))})."


class EDFPolicy(TickPolicy):
    name = "EDF"

    @staticmethod
    def deadline(proc: ProcessState) -> Number:
        return proc.spec.deadline if proc.spec.deadline is not None else math.inf

    def rank(self, proc: ProcessState, now: Number) -> Tuple:
        return (self.deadline(proc), proc.arrival, proc.order)

    def explain(self, proc: ProcessState, now: Number) -> str:
        return f"Selected {proc.pid} because it has the earliest deadline ({_fmt(self.deadline(proc))})."
