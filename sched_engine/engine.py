"""
Discrete-event core allocation loop shared by every dispatch policy.

The loop owns the clock, the per-run process arena, the ready list and the
simulated cores. Policies only answer questions about ordering, slices and
preemption (see `policies.DispatchPolicy`).
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Deque, List, Optional, Sequence

from .decisions import DecisionRecorder
from .metrics import calculate_metrics
from .models import CS, IDLE, Number, Process, SimulationOptions, SimulationResult
from .snapshots import generate_snapshots
from .timeline import EventStream

if TYPE_CHECKING:
    from .policies import DispatchPolicy

logger = logging.getLogger(__name__)

# Clock values are rounded to this many decimals after every step.
PRECISION = 9
EPSILON = 1e-9
# Forced step used only when the next event time fails to move the clock.
MIN_ADVANCE = 0.1


def _snap(value: Number) -> Number:
    return round(value, PRECISION)


@dataclass
class ProcessState:
    """Mutable per-run view of one input process."""

    spec: Process
    order: int
    remaining: Number
    level: int = 0
    slice_used: Number = 0
    last_core: Optional[int] = None

    @property
    def pid(self) -> str:
        return self.spec.pid

    @property
    def arrival(self) -> Number:
        return self.spec.arrival

    @property
    def burst(self) -> Number:
        return self.spec.burst

    @property
    def priority(self) -> Optional[int]:
        return self.spec.priority

    @property
    def is_complete(self) -> bool:
        return self.remaining <= EPSILON


@dataclass
class CoreState:
    id: int
    last_pid: str = IDLE
    running: Optional[ProcessState] = None
    switch_end: Optional[Number] = None
    slice_end: Optional[Number] = None
    # True once the current dispatch has produced an interval.
    continues: bool = False
    idling: bool = False

    @property
    def switching(self) -> bool:
        return self.switch_end is not None

    @property
    def is_free(self) -> bool:
        return self.running is None

    def begin_slice(self, start: Number, length: Optional[Number]) -> None:
        if length is None or math.isinf(length):
            self.slice_end = None
        else:
            self.slice_end = _snap(start + length)


class Simulation:
    """One simulation run of `policy` over `processes`."""

    def __init__(self, processes: Sequence[Process], options: SimulationOptions, policy: "DispatchPolicy") -> None:
        self.processes = list(processes)
        self.options = options
        self.policy = policy
        self.recorder = DecisionRecorder(options.enable_logging)
        self.stream = EventStream(options.core_count)
        self.cores: List[CoreState] = [CoreState(id=i) for i in range(options.core_count)]

        states = [ProcessState(spec=p, order=i, remaining=p.burst) for i, p in enumerate(self.processes)]
        self._pending: Deque[ProcessState] = deque(sorted(states, key=lambda s: (s.arrival, s.order)))
        self.ready: List[ProcessState] = []
        self._unfinished = len(states)
        self.now: Number = 0

    def run(self) -> SimulationResult:
        while self._unfinished:
            # Expired slices rejoin the ready list ahead of same-time arrivals.
            for core in self.cores:
                self._settle(core)
            self._admit_arrivals()
            if not self._unfinished:
                break
            self._dispatch_free_cores()
            self._check_preemption()
            self._advance()

        events = self.stream.events()
        result = SimulationResult(
            events=events,
            metrics=calculate_metrics(events, self.processes, self.options),
            snapshots=generate_snapshots(events, self.processes, self.options.core_count),
            logs=self.recorder.lines,
            step_logs=self.recorder.decisions,
        )
        logger.debug(
            "%s scheduled %d process(es) on %d core(s); makespan=%s",
            self.policy.name,
            len(self.processes),
            self.options.core_count,
            result.makespan,
        )
        return result

    def _admit_arrivals(self) -> None:
        while self._pending and self._pending[0].arrival <= self.now:
            state = self._pending.popleft()
            self.policy.on_admit(state, self.now)
            self.ready.append(state)
            self.recorder.note(self.now, f"Process {state.pid} arrived{self.policy.admission_note(state)}")

    def _settle(self, core: CoreState) -> None:
        if core.switching:
            if core.switch_end > self.now:
                return
            core.switch_end = None
            core.begin_slice(self.now, self.policy.slice_length(core.running))

        proc = core.running
        if proc is None:
            return

        if proc.is_complete:
            proc.remaining = 0
            core.running = None
            core.slice_end = None
            self._unfinished -= 1
            self.recorder.note(self.now, f"Process {proc.pid} completed on core {core.id}")
            return

        if core.slice_end is not None and self.now >= core.slice_end:
            note = self.policy.on_slice_expired(proc, self.now)
            core.running = None
            core.slice_end = None
            self.ready.append(proc)
            if note:
                self.recorder.note(self.now, note)

    def _dispatch_free_cores(self) -> None:
        for core in self.cores:
            self._dispatch(core)

    def _dispatch(self, core: CoreState) -> None:
        while core.is_free and self.ready:
            candidates = [p.pid for p in self.ready]
            chosen = self.policy.select(self.ready, core, self.now)
            if chosen is None:
                return

            target = core
            if self.options.enable_affinity and chosen.last_core not in (None, core.id):
                home = self.cores[chosen.last_core]
                if home.is_free:
                    target = home

            reason = self.policy.explain(chosen, self.now)
            self.ready.remove(chosen)
            self.recorder.decide(self.now, target.id, f"Selected Process {chosen.pid}", reason, candidates)
            self._start(target, chosen)

    def _start(self, core: CoreState, proc: ProcessState) -> None:
        overhead = self.options.context_switch_overhead
        core.running = proc
        core.continues = False
        core.idling = False
        proc.last_core = core.id

        if overhead > 0 and core.last_pid not in (IDLE, CS) and core.last_pid != proc.pid:
            end = _snap(self.now + overhead)
            self.stream.context_switch(core.id, self.now, end)
            self.recorder.note(self.now, f"Context switch on core {core.id}: {core.last_pid} -> {proc.pid}")
            core.switch_end = end
            core.last_pid = CS
            core.slice_end = None
            return

        core.begin_slice(self.now, self.policy.slice_length(proc))

    def _victim(self) -> Optional[CoreState]:
        """Busy core holding the worst-ranked running process; ties go to the lowest core id."""
        busy = [c for c in self.cores if c.running is not None and not c.switching]
        if not busy:
            return None
        return max(busy, key=lambda c: self.policy.victim_rank(c.running, self.now))

    def _check_preemption(self) -> None:
        while self.ready:
            core = self._victim()
            if core is None:
                return
            proc = core.running
            if not self.policy.should_preempt(proc, self.ready, self.now):
                return

            self.recorder.decide(
                self.now,
                core.id,
                f"Preempting {proc.pid}",
                self.policy.explain_preemption(proc, self.ready, self.now),
                [p.pid for p in self.ready],
            )
            core.running = None
            core.slice_end = None
            if self.policy.requeue_front(proc):
                self.ready.insert(0, proc)
            else:
                self.ready.append(proc)
            self._dispatch(core)

    def _next_event_time(self) -> Optional[Number]:
        horizon: List[Number] = []
        if self._pending:
            horizon.append(self._pending[0].arrival)
        for core in self.cores:
            if core.switching:
                horizon.append(core.switch_end)
            elif core.running is not None:
                horizon.append(self.now + core.running.remaining)
                if core.slice_end is not None:
                    horizon.append(core.slice_end)
        return _snap(min(horizon)) if horizon else None

    def _advance(self) -> None:
        nxt = self._next_event_time()
        if nxt is None:
            raise RuntimeError(
                f"{self.policy.name} stalled at t={self.now} with {len(self.ready)} ready process(es)"
            )
        if nxt <= self.now:
            logger.warning("%s: clock did not advance at t=%s, forcing a %s step", self.policy.name, self.now, MIN_ADVANCE)
            nxt = _snap(self.now + MIN_ADVANCE)

        duration = nxt - self.now
        for core in self.cores:
            if core.switching:
                continue
            proc = core.running
            if proc is not None:
                self.stream.run(
                    core.id, proc.pid, self.now, nxt, continues=core.continues, coalesce=self.policy.coalesce
                )
                core.continues = True
                proc.remaining = _snap(proc.remaining - duration)
                self.policy.on_run(proc, duration)
                core.last_pid = proc.pid
            elif self._pending:
                if not core.idling:
                    arrival = self._pending[0].arrival
                    self.recorder.decide(
                        self.now, core.id, f"IDLE until {arrival}", f"No process ready. Next arrival at {arrival}.", []
                    )
                self.stream.idle(core.id, self.now, nxt)
                core.idling = True
                core.last_pid = IDLE

        self.now = nxt


def simulate(processes: Sequence[Process], options: SimulationOptions, policy: "DispatchPolicy") -> SimulationResult:
    """
    Run `policy` over `processes` and return the full result.

    Empty input short-circuits to an empty, well-formed result.
    """
    if not processes:
        return SimulationResult(
            events=[],
            metrics=calculate_metrics([], [], options),
            snapshots=[],
            logs=[] if options.enable_logging else None,
            step_logs=[] if options.enable_logging else None,
        )
    return Simulation(processes, options, policy).run()
