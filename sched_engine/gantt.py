from __future__ import annotations

from typing import Dict, List, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import CS, IDLE, GanttEvent

COLORS = ["red", "green", "yellow", "blue", "magenta", "cyan"]


def _cells(value: float) -> int:
    return int(round(value))


def _by_core(events: Sequence[GanttEvent]) -> Dict[int, List[GanttEvent]]:
    cores: Dict[int, List[GanttEvent]] = {}
    for e in sorted(events, key=lambda e: (e.core, e.start)):
        cores.setdefault(e.core, []).append(e)
    return cores


def render_gantt(events: Sequence[GanttEvent]) -> str:
    """
    Plain-text Gantt chart, one row per core. `.` marks idle time and `~`
    a context switch.
    """
    if not events:
        return "(no execution)"

    lines = ["Gantt Chart:"]
    for core, core_events in _by_core(events).items():
        line = "|"
        labels = ""
        time_marks = "0"
        last_time = 0

        for ev in core_events:
            gap = _cells(ev.start) - _cells(last_time)
            if gap > 0:
                line += "." * gap
                labels += " " * gap
                time_marks += f"{_fmt_time(ev.start):>3}"

            width = max(1, _cells(ev.end) - _cells(ev.start))
            fill = "." if ev.pid == IDLE else "~" if ev.pid == CS else "="
            line += fill * width
            labels += _label(ev, width)
            last_time = ev.end
            time_marks += f"{_fmt_time(last_time):>3}"

        lines.extend([f"Core {core}:", line + "|", labels, time_marks])

    return "\n".join(lines)


def build_rich_gantt(events: Sequence[GanttEvent]) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart (one row pair per
    core) and a string with the time marks of the core that finishes last.
    """
    if not events:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    pid_to_color: Dict[str, str] = {}

    def pid_color(pid: str) -> str:
        if pid == IDLE:
            return "grey23"
        if pid == CS:
            return "white"
        if pid not in pid_to_color:
            idx = len(pid_to_color) % len(COLORS)
            pid_to_color[pid] = COLORS[idx]
        return pid_to_color[pid]

    table = Table.grid(padding=(0, 1))
    marks = ""
    latest_end = -1.0
    for core, core_events in _by_core(events).items():
        timeline = Text()
        labels = Text()
        time_marks = "0"
        last_time = 0

        for ev in core_events:
            gap = _cells(ev.start) - _cells(last_time)
            if gap > 0:
                timeline.append(" " * gap)
                labels.append(" " * gap)
                time_marks += f"{_fmt_time(ev.start):>3}"

            width = max(1, _cells(ev.end) - _cells(ev.start))
            timeline.append(" " * width, style=f"on {pid_color(ev.pid)}")
            labels.append(_label(ev, width), style="dim" if not ev.is_work else "bold")

            last_time = ev.end
            time_marks += f"{_fmt_time(last_time):>3}"

        table.add_row(Text(f"C{core}", style="bold"), timeline)
        table.add_row(Text(""), labels)
        if last_time > latest_end:
            latest_end = last_time
            marks = time_marks

    panel = Panel.fit(table, title="Gantt Chart")
    return panel, marks


def _fmt_time(value: float) -> str:
    if isinstance(value, float) and not value.is_integer():
        return f"{value:g}"
    return str(int(value))


def _label(ev: GanttEvent, width: int) -> str:
    if ev.pid == IDLE:
        return " " * width
    return ev.pid[:width].ljust(width)
