import json
from pathlib import Path

import pytest

from sched_engine.models import Process
from sched_engine.workload_io import generate_random_processes, load_workload, save_workload


def test_load_json(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"pid":"A","arrival_time":0,"burst_time":3,"priority":1},'
                 '{"pid":"B","arrival":1,"burst":2,"shareGroup":"g","tickets":4}]')
    procs = load_workload(p)
    assert isinstance(procs[0], Process)
    assert procs[0].burst == 3
    assert procs[1].priority is None
    assert procs[1].arrival == 1
    assert procs[1].share_group == "g"
    assert procs[1].tickets == 4


def test_load_csv(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text("pid,arrival,burst,priority,deadline\nA,0,3,1,\nB,1.5,2,,9\n")
    procs = load_workload(p)
    assert procs[0].pid == "A"
    assert procs[0].deadline is None
    assert procs[1].arrival == 1.5
    assert procs[1].priority is None
    assert procs[1].deadline == 9


def test_rejects_unknown_suffix(tmp_path: Path):
    with pytest.raises(ValueError):
        load_workload(tmp_path / "w.txt")


def test_rejects_bad_entry(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text(json.dumps([{"pid": "A", "arrival": 0}]))
    with pytest.raises(ValueError, match="Invalid process entry"):
        load_workload(p)


@pytest.mark.parametrize("suffix", [".json", ".csv"])
def test_save_then_load(tmp_path: Path, suffix):
    procs = [Process("A", 0, 3, priority=2), Process("B", 1, 2, share_group="g", share_weight=2)]
    path = tmp_path / f"w{suffix}"
    save_workload(procs, path)
    assert load_workload(path) == procs


def test_generate_random_processes_is_seeded():
    a = generate_random_processes(6, (0, 5), (1, 4), seed=3)
    b = generate_random_processes(6, (0, 5), (1, 4), seed=3)
    assert a == b
    assert [p.pid for p in a] == [f"P{i}" for i in range(1, 7)]
    assert [p.arrival for p in a] == sorted(p.arrival for p in a)
    assert all(1 <= p.burst <= 4 for p in a)
