import json
from pathlib import Path

import pytest

from sched_engine.cli import build_parser, main
from sched_engine.workload_io import load_workload


@pytest.fixture
def workload(tmp_path: Path) -> Path:
    path = tmp_path / "w.json"
    path.write_text(
        json.dumps(
            [
                {"pid": "P1", "arrival": 0, "burst": 4, "priority": 2},
                {"pid": "P2", "arrival": 1, "burst": 2, "priority": 1},
            ]
        )
    )
    return path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_run_prints_chart_and_metrics(workload, capsys):
    assert main(["run", "-a", "rr", "-w", str(workload), "-q", "1", "--log"]) == 0
    out = capsys.readouterr().out
    assert "Gantt Chart" in out
    assert "Per-process metrics" in out
    assert "Decision log" in out


def test_run_with_step_replay(workload, capsys):
    assert main(["run", "-a", "fcfs", "-w", str(workload), "--step", "--step-delay", "0"]) == 0
    assert "t=" in capsys.readouterr().out


def test_compare(workload, capsys):
    assert main(["compare", "-w", str(workload), "-a", "fcfs", "sjf", "mlfq", "--cores", "2"]) == 0
    out = capsys.readouterr().out
    assert "Algorithm comparison" in out
    assert "MLFQ" in out


def test_unknown_algorithm_is_an_error(workload, capsys):
    assert main(["run", "-a", "nope", "-w", str(workload)]) == 1
    assert "Unknown algorithm" in capsys.readouterr().out


def test_invalid_workload_is_an_error(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"pid": "P1", "arrival": 0, "burst": -1}]))
    assert main(["run", "-a", "fcfs", "-w", str(path)]) == 1
    assert "Invalid burst" in capsys.readouterr().out


def test_grade(tmp_path, capsys):
    cases = tmp_path / "cases.json"
    cases.write_text(
        json.dumps(
            [
                {
                    "id": "fcfs-basic",
                    "algorithm": "FCFS",
                    "processes": [{"pid": "P1", "arrival": 0, "burst": 4}, {"pid": "P2", "arrival": 0, "burst": 2}],
                    "expected": {"avgTurnaround": 5, "avgWaiting": 2},
                }
            ]
        )
    )
    assert main(["grade", "-t", str(cases)]) == 0
    assert "100.0%" in capsys.readouterr().out


def test_generate(tmp_path):
    out = tmp_path / "gen.csv"
    assert main(["generate", "-n", "4", "-o", str(out), "--seed", "1"]) == 0
    assert len(load_workload(out)) == 4


def test_optimize(workload, capsys):
    assert main(["optimize", "-w", str(workload), "--max-quantum", "5"]) == 0
    out = capsys.readouterr().out
    assert "Round-robin quantum search" in out
    assert "Optimal quantum" in out
