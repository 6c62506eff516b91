from sched_engine.algorithms import run_fcfs, run_hrrn, run_mlfq, run_mq, run_rr, run_srtf
from sched_engine.decisions import DecisionRecorder
from sched_engine.models import Process


def test_fcfs_step_logs_explain_selection():
    res = run_fcfs([Process("P1", 0, 5), Process("P2", 2, 3)], {"enableLogging": True})
    assert res.step_logs
    first = res.step_logs[0]
    assert first.message == "Selected Process P1"
    assert "arrived earliest" in first.reason
    assert first.time == 0
    assert first.core_id == 0
    assert first.queue_state == ["P1"]


def test_logs_disabled_by_default():
    res = run_fcfs([Process("P1", 0, 1)])
    assert res.logs is None
    assert res.step_logs is None


def test_text_log_lines():
    res = run_fcfs([Process("P1", 0, 1), Process("P2", 0, 1)], {"enable_logging": True})
    assert res.logs[:2] == ["Time 0: Process P1 arrived", "Time 0: Process P2 arrived"]
    assert "Time 1: Process P1 completed on core 0" in res.logs


def test_idle_decision_names_next_arrival():
    res = run_rr([Process("P1", 0, 2), Process("P2", 5, 2)], {"enableLogging": True})
    idle = [d for d in res.step_logs if d.message.startswith("IDLE")]
    assert len(idle) == 1
    assert idle[0].message == "IDLE until 5"
    assert idle[0].time == 2


def test_preemption_is_logged():
    res = run_srtf([Process("P1", 0, 10), Process("P2", 2, 2)], {"enableLogging": True})
    preempt = [d for d in res.step_logs if d.message.startswith("Preempting")]
    assert [(d.time, d.message) for d in preempt] == [(2, "Preempting P1")]
    assert "2 < 8" in preempt[0].reason


def test_hrrn_reason_quotes_ratio():
    res = run_hrrn([Process("P1", 0, 3), Process("P2", 1, 2), Process("P3", 2, 5)], {"enableLogging": True})
    second = res.step_logs[1]
    assert second.message == "Selected Process P2"
    assert "2.00" in second.reason
    assert second.queue_state == ["P2", "P3"]


def test_mq_logs_queue_assignment():
    res = run_mq([Process("P1", 0, 1, priority=1), Process("P2", 0, 1, priority=3)], {"enableLogging": True})
    assert "Time 0: Process P1 arrived -> Queue 1 (High/RR)" in res.logs
    assert "Time 0: Process P2 arrived -> Queue 2 (Low/FCFS)" in res.logs


def test_mlfq_logs_demotion():
    res = run_mlfq([Process("P1", 0, 3)], {"enableLogging": True})
    assert "Time 2: Process P1 used its Q0 quantum, demoted to Q1" in res.logs


def test_mlfq_demotes_to_bottom_level_after_q1_quantum():
    res = run_mlfq([Process("P1", 0, 10)], {"enableLogging": True})
    demotions = [line for line in res.logs if "demoted" in line]
    assert demotions == [
        "Time 2: Process P1 used its Q0 quantum, demoted to Q1",
        "Time 6: Process P1 used its Q1 quantum, demoted to Q2",
    ]


def test_recorder_is_noop_when_disabled():
    rec = DecisionRecorder(False)
    rec.note(0, "ignored")
    rec.decide(0, 0, "ignored", "", [])
    assert rec.lines is None
    assert rec.decisions is None
