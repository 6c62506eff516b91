from __future__ import annotations

import math
from typing import Dict, List, Sequence

from .models import IDLE, GanttEvent, Process, Snapshot


def generate_snapshots(events: Sequence[GanttEvent], processes: Sequence[Process], core_count: int = 1) -> List[Snapshot]:
    """
    Replay a schedule one integer tick at a time.

    For every tick before the makespan, report what each core is doing and
    which processes are waiting; a final all-idle snapshot marks the makespan.
    """
    if not events:
        return []

    makespan = max(e.end for e in events)

    completion: Dict[str, float] = {}
    for e in events:
        if e.is_work:
            completion[e.pid] = max(completion.get(e.pid, e.end), e.end)

    snapshots: List[Snapshot] = []
    for t in range(math.ceil(makespan)):
        running: List[str] = []
        for c in range(core_count):
            current = next((e for e in events if e.core == c and e.start <= t < e.end), None)
            running.append(current.pid if current is not None else IDLE)

        ready = [
            p.pid
            for p in processes
            if p.pid not in running and p.arrival <= t and completion.get(p.pid, math.inf) > t
        ]
        snapshots.append(Snapshot(time=t, running_pids=running, ready_queue=ready))

    snapshots.append(Snapshot(time=makespan, running_pids=[IDLE] * core_count, ready_queue=[]))
    return snapshots
