import itertools
import random
from collections import defaultdict

import pytest

from sched_engine.algorithms import ALGORITHMS, run_algorithm, run_fcfs, run_mlfq, run_rr, run_sjf, run_srtf
from sched_engine.models import Process, SimulationOptions

SEEDS = range(25)


def _random_workload(rng, n_min=1, n_max=8, max_arrival=20, max_burst=10, all_at_zero=False):
    count = rng.randint(n_min, n_max)
    return [
        Process(
            pid=f"P{i}",
            arrival=0 if all_at_zero else rng.randint(0, max_arrival),
            burst=rng.randint(1, max_burst),
            priority=rng.randint(1, 4),
            tickets=rng.randint(1, 5),
            share_group=rng.choice(["A", "B"]),
            deadline=None,
            period=rng.randint(1, 12),
        )
        for i in range(1, count + 1)
    ]


def _assert_well_formed(result, processes, core_count=1):
    # Per-core intervals never overlap.
    per_core = defaultdict(list)
    for e in result.events:
        assert e.end > e.start
        per_core[e.core].append(e)
    for events in per_core.values():
        events.sort(key=lambda e: e.start)
        for prev, nxt in zip(events, events[1:]):
            assert prev.end <= nxt.start + 1e-9

    # A process never runs on two cores at once.
    work = sorted((e for e in result.events if e.is_work), key=lambda e: e.start)
    for a, b in itertools.combinations(work, 2):
        if a.pid == b.pid:
            assert a.end <= b.start + 1e-9 or b.end <= a.start + 1e-9

    # Work conservation and completeness.
    for p in processes:
        served = sum(e.duration for e in result.events if e.pid == p.pid)
        assert served == pytest.approx(p.burst)
        first = min(e.start for e in result.events if e.pid == p.pid)
        assert first >= p.arrival
        m = result.metrics
        assert m.turnaround[p.pid] == pytest.approx(m.completion[p.pid] - p.arrival)
        assert m.waiting[p.pid] == pytest.approx(m.turnaround[p.pid] - p.burst)
        assert m.waiting[p.pid] >= -1e-9


@pytest.mark.parametrize("name", sorted(ALGORITHMS))
@pytest.mark.parametrize("seed", SEEDS)
def test_schedules_are_well_formed(name, seed):
    rng = random.Random(seed)
    processes = _random_workload(rng)
    options = SimulationOptions(core_count=rng.randint(1, 3), quantum=rng.randint(1, 4))
    result = run_algorithm(name, processes, options)
    _assert_well_formed(result, processes, options.core_count)


@pytest.mark.parametrize("seed", SEEDS)
def test_well_formed_with_context_switch_overhead(seed):
    rng = random.Random(seed)
    processes = _random_workload(rng)
    options = SimulationOptions(context_switch_overhead=0.5, core_count=rng.randint(1, 2))
    for name in ("fcfs", "rr", "srtf", "mlfq", "lottery"):
        _assert_well_formed(run_algorithm(name, processes, options), processes)


@pytest.mark.parametrize("seed", SEEDS)
def test_fcfs_starts_in_arrival_order(seed):
    processes = _random_workload(random.Random(seed))
    result = run_fcfs(processes)
    starts = {e.pid: e.start for e in result.events if e.is_work}
    ordered = sorted(processes, key=lambda p: p.arrival)
    assert [starts[p.pid] for p in ordered] == sorted(starts[p.pid] for p in ordered)


@pytest.mark.parametrize("seed", SEEDS)
def test_fcfs_multicore_runs_each_process_once(seed):
    rng = random.Random(seed)
    processes = _random_workload(rng, n_max=12)
    result = run_fcfs(processes, {"coreCount": rng.randint(1, 4)})
    for p in processes:
        assert len([e for e in result.events if e.pid == p.pid]) == 1


@pytest.mark.parametrize("seed", range(10))
def test_sjf_beats_every_order_when_all_arrive_together(seed):
    processes = _random_workload(random.Random(seed), n_max=5, all_at_zero=True)
    best = run_sjf(processes).metrics.avg_waiting
    for order in itertools.permutations(processes):
        assert best <= run_fcfs(list(order)).metrics.avg_waiting + 1e-9


@pytest.mark.parametrize("seed", SEEDS)
def test_sjf_never_worse_than_fcfs_when_all_arrive_together(seed):
    processes = _random_workload(random.Random(seed), all_at_zero=True)
    assert run_sjf(processes).metrics.avg_waiting <= run_fcfs(processes).metrics.avg_waiting + 1e-9


@pytest.mark.parametrize("seed", SEEDS)
def test_srtf_never_worse_than_sjf(seed):
    processes = _random_workload(random.Random(seed))
    assert run_srtf(processes).metrics.avg_waiting <= run_sjf(processes).metrics.avg_waiting + 1e-9


@pytest.mark.parametrize("seed", SEEDS)
def test_lrtf_finishes_everything(seed):
    processes = _random_workload(random.Random(seed), n_max=5)
    result = run_algorithm("lrtf", processes)
    assert set(result.metrics.completion) == {p.pid for p in processes}
    assert result.metrics.completion[max(processes, key=lambda p: p.burst).pid] > 0


@pytest.mark.parametrize("quantum", [1, 2, 3])
@pytest.mark.parametrize("seed", SEEDS)
def test_rr_slices_never_exceed_quantum(seed, quantum):
    processes = _random_workload(random.Random(seed))
    result = run_rr(processes, {"quantum": quantum})
    assert all(e.duration <= quantum for e in result.events if e.is_work)


@pytest.mark.parametrize("seed", SEEDS)
def test_mlfq_first_round_uses_top_quantum(seed):
    rng = random.Random(seed)
    count = rng.randint(2, 6)
    processes = [Process(f"P{i}", 0, rng.randint(3, 10)) for i in range(1, count + 1)]
    result = run_mlfq(processes)
    first_round = [e for e in result.events if e.is_work][:count]
    assert [e.pid for e in first_round] == [p.pid for p in processes]
    assert all(e.duration == 2 for e in first_round)


@pytest.mark.parametrize("seed", SEEDS)
def test_logging_does_not_change_schedule(seed):
    processes = _random_workload(random.Random(seed))
    for name in ("rr", "mlfq", "fair_share", "lottery"):
        quiet = run_algorithm(name, processes)
        loud = run_algorithm(name, processes, {"enableLogging": True})
        assert [(e.pid, e.start, e.end, e.core_id) for e in quiet.events] == [
            (e.pid, e.start, e.end, e.core_id) for e in loud.events
        ]


def _remaining_at(result, process, t):
    done = sum(max(0, min(e.end, t) - e.start) for e in result.events if e.pid == process.pid)
    return process.burst - done


@pytest.mark.parametrize("name, better", [("srtf", min), ("lrtf", max)])
@pytest.mark.parametrize("seed", SEEDS)
def test_running_process_has_extreme_remaining_time(name, better, seed):
    processes = _random_workload(random.Random(seed))
    by_pid = {p.pid: p for p in processes}
    result = run_algorithm(name, processes)

    for snap in result.snapshots[:-1]:
        running = snap.running_pids[0]
        if running not in by_pid or not snap.ready_queue:
            continue
        t = snap.time
        mine = _remaining_at(result, by_pid[running], t)
        others = [_remaining_at(result, by_pid[pid], t) for pid in snap.ready_queue]
        assert better(others + [mine]) == mine
