from __future__ import annotations

from typing import Dict, List

from .models import CS, IDLE, GanttEvent, Number


class EventStream:
    """
    Append-only builder for the Gantt event list of one simulation run.

    Each core keeps its own ordered list so the last interval can be
    extended in place when a run continues.
    """

    def __init__(self, core_count: int) -> None:
        self._per_core: Dict[int, List[GanttEvent]] = {c: [] for c in range(core_count)}

    def run(self, core_id: int, pid: str, start: Number, end: Number, *, continues: bool, coalesce: bool) -> None:
        """
        Record `pid` running on `core_id` over [start, end).

        `continues` is true when this is the same dispatch as the previous
        interval; `coalesce` merges a fresh dispatch into an adjacent event of
        the same pid.
        """
        if end <= start:
            return
        last = self._last(core_id)
        if last is not None and last.pid == pid and last.end == start and (continues or coalesce):
            last.end = end
            return
        self._per_core[core_id].append(GanttEvent(pid=pid, start=start, end=end, core_id=core_id))

    def idle(self, core_id: int, start: Number, end: Number) -> None:
        if end <= start:
            return
        last = self._last(core_id)
        if last is not None and last.pid == IDLE and last.end == start:
            last.end = end
            return
        self._per_core[core_id].append(GanttEvent(pid=IDLE, start=start, end=end, core_id=core_id))

    def context_switch(self, core_id: int, start: Number, end: Number) -> None:
        if end <= start:
            return
        self._per_core[core_id].append(GanttEvent(pid=CS, start=start, end=end, core_id=core_id))

    def events(self) -> List[GanttEvent]:
        merged = [e for events in self._per_core.values() for e in events]
        return sorted(merged, key=lambda e: (e.start, e.core))

    def _last(self, core_id: int):
        events = self._per_core[core_id]
        return events[-1] if events else None
