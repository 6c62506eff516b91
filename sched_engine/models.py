from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

Number = Union[int, float]

IDLE = "IDLE"
CS = "CS"

# Keys accepted by SimulationOptions.from_mapping in their camelCase form.
_OPTION_ALIASES = {
    "contextSwitchOverhead": "context_switch_overhead",
    "enableLogging": "enable_logging",
    "coreCount": "core_count",
    "enableAffinity": "enable_affinity",
    "fairShareQuantum": "fair_share_quantum",
    "randomSeed": "random_seed",
    "energyConfig": "energy_config",
    "mlfqQuanta": "mlfq_quanta",
    "timeQuantum": "quantum",
}

_ENERGY_ALIASES = {
    "activeWatts": "active_watts",
    "idleWatts": "idle_watts",
    "switchJoules": "switch_joules",
}


@dataclass(frozen=True)
class Process:
    pid: str
    arrival: Number
    burst: Number
    priority: Optional[int] = None
    tickets: Optional[int] = None
    share_group: Optional[str] = None
    share_weight: Optional[float] = None
    deadline: Optional[Number] = None
    period: Optional[Number] = None


@dataclass
class GanttEvent:
    """
    One contiguous interval on a core: a process run, an idle gap or a
    context switch.
    """

    pid: str
    start: Number
    end: Number
    core_id: Optional[int] = None

    @property
    def core(self) -> int:
        # Events built without a core id belong to core 0.
        return self.core_id if self.core_id is not None else 0

    @property
    def duration(self) -> Number:
        return self.end - self.start

    @property
    def is_work(self) -> bool:
        return self.pid not in (IDLE, CS)


@dataclass(frozen=True)
class EnergyConfig:
    active_watts: float = 20.0
    idle_watts: float = 5.0
    switch_joules: float = 0.1

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "EnergyConfig":
        values = {_ENERGY_ALIASES.get(k, k): v for k, v in mapping.items()}
        return cls(**values)


@dataclass(frozen=True)
class SimulationOptions:
    quantum: Number = 2
    context_switch_overhead: Number = 0
    enable_logging: bool = False
    core_count: int = 1
    enable_affinity: bool = False
    fair_share_quantum: Number = 1
    random_seed: int = 42
    energy_config: EnergyConfig = field(default_factory=EnergyConfig)
    mlfq_quanta: Tuple[Number, Number, Number] = (2, 4, math.inf)

    def __post_init__(self) -> None:
        if self.quantum <= 0:
            raise ValueError("quantum must be strictly positive")
        if self.context_switch_overhead < 0:
            raise ValueError("context_switch_overhead cannot be negative")
        if not isinstance(self.core_count, int) or self.core_count < 1:
            raise ValueError("core_count must be a positive integer")
        if self.fair_share_quantum <= 0:
            raise ValueError("fair_share_quantum must be strictly positive")
        if len(self.mlfq_quanta) != 3 or any(q <= 0 for q in self.mlfq_quanta):
            raise ValueError("mlfq_quanta must hold three positive quanta")

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "SimulationOptions":
        """
        Build options from a plain mapping, accepting both snake_case and the
        camelCase keys used by JSON test cases.
        """
        if not mapping:
            return cls()

        values: Dict[str, Any] = {}
        for key, value in mapping.items():
            name = _OPTION_ALIASES.get(key, key)
            if value is None:
                continue
            if name == "energy_config" and isinstance(value, Mapping):
                value = EnergyConfig.from_mapping(value)
            if name == "mlfq_quanta":
                value = tuple(math.inf if q is None else q for q in value)
            values[name] = value

        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown simulation option(s): {', '.join(sorted(unknown))}")
        return cls(**values)


@dataclass
class EnergyMetrics:
    total_energy: float = 0.0
    active_energy: float = 0.0
    idle_energy: float = 0.0
    switch_energy: float = 0.0


@dataclass
class Metrics:
    completion: Dict[str, Number] = field(default_factory=dict)
    turnaround: Dict[str, Number] = field(default_factory=dict)
    waiting: Dict[str, Number] = field(default_factory=dict)
    response: Dict[str, Number] = field(default_factory=dict)
    avg_turnaround: float = 0.0
    avg_waiting: float = 0.0
    avg_response: float = 0.0
    p95_turnaround: Number = 0
    p95_waiting: Number = 0
    p95_response: Number = 0
    std_dev_turnaround: float = 0.0
    std_dev_waiting: float = 0.0
    std_dev_response: float = 0.0
    context_switches: int = 0
    cpu_utilization: float = 0.0
    energy: EnergyMetrics = field(default_factory=EnergyMetrics)


@dataclass
class Snapshot:
    time: Number
    running_pids: List[str]
    ready_queue: List[str]


@dataclass
class DecisionLog:
    """
    A single dispatch decision: what was chosen, why, and what else was
    waiting at that moment.
    """

    time: Number
    core_id: int
    message: str
    reason: str
    queue_state: List[str] = field(default_factory=list)


@dataclass
class SimulationResult:
    events: List[GanttEvent] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    snapshots: Optional[List[Snapshot]] = None
    logs: Optional[List[str]] = None
    step_logs: Optional[List[DecisionLog]] = None

    def schedule(self) -> List[str]:
        """Ordered pids of the work events, skipping IDLE and CS."""
        work = sorted((e for e in self.events if e.is_work), key=lambda e: (e.start, e.core))
        return [e.pid for e in work]

    @property
    def makespan(self) -> Number:
        return max((e.end for e in self.events), default=0)
