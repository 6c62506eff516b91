from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Set

from .models import Process


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _field(entry: Mapping[str, Any], name: str, alias: Optional[str] = None) -> Any:
    if name in entry:
        return entry[name]
    if alias is not None:
        return entry.get(alias)
    return None


def validate_processes(processes: Any) -> ValidationResult:
    """
    Check a raw process list before it reaches a scheduler.

    Entries may be mappings (snake_case or camelCase keys) or `Process`
    objects. The first problem found is reported; an empty list is valid.
    """
    if not isinstance(processes, (list, tuple)):
        return ValidationResult(False, "Input must be a list of processes")

    pids: Set[str] = set()
    for raw in processes:
        if isinstance(raw, Process):
            entry: Mapping[str, Any] = asdict(raw)
        elif isinstance(raw, Mapping):
            entry = raw
        else:
            return ValidationResult(False, "Process must be an object")

        pid = entry.get("pid")
        if not pid or not isinstance(pid, str):
            return ValidationResult(False, "Process missing valid PID")
        if pid in pids:
            return ValidationResult(False, f"Duplicate PID found: {pid}")
        pids.add(pid)

        arrival = _field(entry, "arrival", "arrival_time")
        if not _is_number(arrival) or arrival < 0:
            return ValidationResult(False, f"Invalid arrival time for {pid}")

        burst = _field(entry, "burst", "burst_time")
        if not _is_number(burst) or burst <= 0:
            return ValidationResult(False, f"Invalid burst time for {pid}. Must be > 0")

        tickets = entry.get("tickets")
        if tickets is not None and (not _is_number(tickets) or tickets <= 0):
            return ValidationResult(False, f"Invalid tickets for {pid}. Must be > 0")

        weight = _field(entry, "share_weight", "shareWeight")
        if weight is not None and (not _is_number(weight) or weight <= 0):
            return ValidationResult(False, f"Invalid share weight for {pid}. Must be > 0")

        group = _field(entry, "share_group", "shareGroup")
        if group is not None and not isinstance(group, str):
            return ValidationResult(False, f"Invalid share group for {pid}. Must be a string")

        deadline = entry.get("deadline")
        if deadline is not None:
            if not _is_number(deadline):
                return ValidationResult(False, f"Invalid deadline for {pid}")
            if deadline < arrival:
                return ValidationResult(False, f"Deadline must be >= arrival for {pid}")

        period = entry.get("period")
        if period is not None and (not _is_number(period) or period <= 0):
            return ValidationResult(False, f"Invalid period for {pid}. Must be > 0")

    return ValidationResult(True)
