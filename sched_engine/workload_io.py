from __future__ import annotations

import csv
import json
import random
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Number, Process

# Column / key names accepted for each Process field, first match wins.
_FIELD_KEYS: Dict[str, Tuple[str, ...]] = {
    "arrival": ("arrival", "arrival_time", "arrivalTime"),
    "burst": ("burst", "burst_time", "burstTime"),
    "priority": ("priority",),
    "tickets": ("tickets",),
    "share_group": ("share_group", "shareGroup"),
    "share_weight": ("share_weight", "shareWeight"),
    "deadline": ("deadline",),
    "period": ("period",),
}

CSV_COLUMNS = ["pid", "arrival", "burst", "priority", "tickets", "share_group", "share_weight", "deadline", "period"]


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a workload from a JSON or CSV file into a list of Process objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def save_workload(processes: Sequence[Process], path: str | Path) -> None:
    """
    Write processes to `.json` or `.csv`, omitting unset optional fields.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    rows = [{k: v for k, v in asdict(p).items() if v is not None} for p in processes]

    if suffix == ".json":
        with path.open("w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2)
        return
    if suffix == ".csv":
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
        return

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def generate_random_processes(
    count: int,
    arrival_range: Tuple[int, int] = (0, 10),
    burst_range: Tuple[int, int] = (1, 10),
    seed: Optional[int] = None,
) -> List[Process]:
    """
    Generate `count` processes with integer arrival and burst times drawn
    from the inclusive ranges, sorted by arrival and named P1..Pn.
    """
    if count < 0:
        raise ValueError("count cannot be negative")
    if burst_range[0] < 1:
        raise ValueError("burst_range must start at 1 or higher")

    rng = random.Random(seed)
    drawn = sorted(
        (rng.randint(*arrival_range), rng.randint(*burst_range)) for _ in range(count)
    )
    return [Process(pid=f"P{i}", arrival=arrival, burst=burst) for i, (arrival, burst) in enumerate(drawn, start=1)]


def _load_json(path: Path) -> List[Process]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError("JSON workload must be a list of process objects")

    processes: List[Process] = []
    for entry in raw:
        processes.append(process_from_mapping(entry))

    return processes


def _load_csv(path: Path) -> List[Process]:
    processes: List[Process] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            processes.append(process_from_mapping(row))
    return processes


def processes_from_records(records: Iterable[Any]) -> List[Process]:
    """Accept a mix of Process objects and mappings."""
    return [r if isinstance(r, Process) else process_from_mapping(r) for r in records]


def process_from_mapping(mapping: Mapping[str, Any]) -> Process:
    """
    Build a Process from a JSON object or CSV row. Empty strings count as
    missing; numeric strings are parsed.
    """
    try:
        pid = str(mapping["pid"])
        arrival = _number(_lookup(mapping, "arrival"))
        burst = _number(_lookup(mapping, "burst"))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid process entry: {mapping!r}") from exc
    if arrival is None or burst is None:
        raise ValueError(f"Invalid process entry: {mapping!r}")

    try:
        priority = _optional_int(_lookup(mapping, "priority"))
        tickets = _optional_int(_lookup(mapping, "tickets"))
        share_weight = _number(_lookup(mapping, "share_weight"))
        deadline = _number(_lookup(mapping, "deadline"))
        period = _number(_lookup(mapping, "period"))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid process entry: {mapping!r}") from exc

    group = _lookup(mapping, "share_group")

    return Process(
        pid=pid,
        arrival=arrival,
        burst=burst,
        priority=priority,
        tickets=tickets,
        share_group=str(group) if group is not None else None,
        share_weight=share_weight,
        deadline=deadline,
        period=period,
    )


def _lookup(mapping: Mapping[str, Any], field: str) -> Any:
    for key in _FIELD_KEYS[field]:
        value = mapping.get(key)
        if value not in (None, ""):
            return value
    return None


def _number(value: Any) -> Optional[Number]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def _optional_int(value: Any) -> Optional[int]:
    number = _number(value)
    return int(number) if number is not None else None
