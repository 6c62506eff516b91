from rich.console import Console
from rich.panel import Panel

from sched_engine.algorithms import run_fcfs
from sched_engine.gantt import build_rich_gantt, render_gantt
from sched_engine.models import Process


def test_render_gantt_plain_text():
    res = run_fcfs([Process("P1", 0, 2), Process("P2", 4, 3)], {"contextSwitchOverhead": 0})
    text = render_gantt(res.events)
    lines = text.splitlines()
    assert lines[0] == "Gantt Chart:"
    assert lines[1] == "Core 0:"
    assert lines[2] == "|==..===|"
    assert lines[3].startswith("P1  P2")


def test_render_gantt_marks_context_switches():
    res = run_fcfs([Process("P1", 0, 1), Process("P2", 0, 1)], {"contextSwitchOverhead": 1})
    assert "|=~=|" in render_gantt(res.events)


def test_render_gantt_empty():
    assert render_gantt([]) == "(no execution)"


def test_build_rich_gantt_one_row_pair_per_core():
    res = run_fcfs([Process("P1", 0, 2), Process("P2", 0, 3)], {"coreCount": 2})
    panel, marks = build_rich_gantt(res.events)
    assert isinstance(panel, Panel)
    assert marks == "0  3"

    console = Console(record=True, width=60)
    console.print(panel)
    out = console.export_text()
    assert "C0" in out
    assert "C1" in out


def test_build_rich_gantt_empty():
    panel, marks = build_rich_gantt([])
    assert marks == ""
