from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import ALGORITHMS, run_algorithm
from .autograder import AutoGradeReport, load_test_cases, run_autograder
from .gantt import build_rich_gantt
from .metrics import summarize_metrics
from .models import IDLE, Process, SimulationOptions, SimulationResult
from .optimizer import find_optimal_quantum
from .validators import validate_processes
from .workload_io import generate_random_processes, load_workload, save_workload

logger = logging.getLogger(__name__)

DEFAULT_COMPARE = ["fcfs", "sjf", "srtf", "rr", "priority", "hrrn", "mlfq"]


def _add_option_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--quantum",
        "-q",
        type=float,
        default=2,
        help="Time quantum for RR and the MQ round-robin queue (default: 2).",
    )
    parser.add_argument("--cores", "-c", type=int, default=1, help="Number of simulated cores (default: 1).")
    parser.add_argument(
        "--cs-overhead",
        type=float,
        default=0,
        help="Context switch overhead in time units (default: 0).",
    )
    parser.add_argument("--seed", type=int, default=42, help="Seed for the lottery scheduler (default: 42).")
    parser.add_argument(
        "--fair-share-quantum",
        type=float,
        default=1,
        help="Slice length used by the fair-share scheduler (default: 1).",
    )
    parser.add_argument(
        "--affinity",
        action="store_true",
        help="Prefer placing a process back on the core it last ran on.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sched-engine",
        description="Deterministic multi-policy CPU scheduling simulator.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scheduling algorithm on a workload file.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Algorithm to use ({', '.join(ALGORITHMS)}).",
    )
    run_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    _add_option_arguments(run_parser)
    run_parser.add_argument(
        "--log",
        action="store_true",
        help="Print the decision log after the run.",
    )
    run_parser.add_argument(
        "--step",
        action="store_true",
        help="Replay the run tick by tick in the terminal.",
    )
    run_parser.add_argument(
        "--step-delay",
        type=float,
        default=0.3,
        help="Seconds to wait between steps when --step is used (default: 0.3).",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple algorithms on the same workload and compare average metrics.",
    )
    compare_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=DEFAULT_COMPARE,
        help=f"Algorithms to compare (default: {' '.join(DEFAULT_COMPARE)}).",
    )
    _add_option_arguments(compare_parser)

    grade_parser = subparsers.add_parser("grade", help="Run auto-grader test cases from a JSON file.")
    grade_parser.add_argument("--tests", "-t", required=True, help="Path to a JSON list of test cases.")

    opt_parser = subparsers.add_parser("optimize", help="Search for the round-robin quantum with the lowest cost.")
    opt_parser.add_argument("--workload", "-w", required=True, help="Path to JSON or CSV workload file.")
    opt_parser.add_argument("--cores", "-c", type=int, default=1, help="Number of simulated cores (default: 1).")
    opt_parser.add_argument(
        "--max-quantum",
        type=int,
        default=50,
        help="Largest quantum to try; the sweep stops at max(20, longest burst) anyway (default: 50).",
    )
    opt_parser.add_argument("--weight-wait", type=float, default=1.0, help="Cost per unit of average waiting (default: 1).")
    opt_parser.add_argument("--weight-switch", type=float, default=0.5, help="Cost per context switch (default: 0.5).")

    gen_parser = subparsers.add_parser("generate", help="Write a random workload file.")
    gen_parser.add_argument("--count", "-n", type=int, default=5, help="Number of processes (default: 5).")
    gen_parser.add_argument("--output", "-o", required=True, help="Destination .json or .csv file.")
    gen_parser.add_argument("--max-arrival", type=int, default=10, help="Latest arrival time (default: 10).")
    gen_parser.add_argument("--max-burst", type=int, default=10, help="Longest burst time (default: 10).")
    gen_parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible output.")

    return parser


def _options_from_args(args: argparse.Namespace, enable_logging: bool = False) -> SimulationOptions:
    return SimulationOptions(
        quantum=_whole(args.quantum),
        context_switch_overhead=_whole(args.cs_overhead),
        core_count=args.cores,
        enable_affinity=args.affinity,
        fair_share_quantum=_whole(args.fair_share_quantum),
        random_seed=args.seed,
        enable_logging=enable_logging,
    )


def _whole(value: float):
    # Keep integral CLI values as ints so the printed schedule reads 0, 2, 4.
    return int(value) if float(value).is_integer() else value


def _load_checked(path: Path) -> List[Process]:
    processes = load_workload(path)
    check = validate_processes(processes)
    if not check.valid:
        raise ValueError(check.error)
    return processes


def _print_result(name: str, result: SimulationResult, processes: List[Process], console: Console) -> None:
    console.print(f"[bold]Algorithm:[/bold] {name.upper()}")
    console.print()

    panel, time_marks = build_rich_gantt(result.events)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()

    headers = ["PID", "Arrive", "Burst", "Complete", "Wait", "Turnaround", "Response", "Priority"]

    m = result.metrics
    proc_table = Table(title="Per-process metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "Priority"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in processes:
        proc_table.add_row(
            p.pid,
            str(p.arrival),
            str(p.burst),
            str(m.completion.get(p.pid, "")),
            str(m.waiting.get(p.pid, "")),
            str(m.turnaround.get(p.pid, "")),
            str(m.response.get(p.pid, "")),
            "" if p.priority is None else str(p.priority),
        )

    console.print(proc_table)
    console.print()

    summary = summarize_metrics(m)
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", f"{summary['avg_waiting']:.2f}")
    sys_table.add_row("Avg turnaround", f"{summary['avg_turnaround']:.2f}")
    sys_table.add_row("Avg response", f"{summary['avg_response']:.2f}")
    sys_table.add_row("P95 turnaround", f"{m.p95_turnaround:.2f}")
    sys_table.add_row("Std dev waiting", f"{m.std_dev_waiting:.2f}")
    sys_table.add_row("Context switches", str(m.context_switches))
    sys_table.add_row("CPU utilization", f"{m.cpu_utilization:.1f}%")
    sys_table.add_row("Energy (J)", f"{m.energy.total_energy:.2f}")

    console.print(sys_table)


def _print_decisions(result: SimulationResult, console: Console) -> None:
    table = Table(title="Decision log", box=box.SIMPLE_HEAVY)
    table.add_column("Time", justify="right")
    table.add_column("Core", justify="center")
    table.add_column("Decision")
    table.add_column("Reason")
    table.add_column("Queue")
    for d in result.step_logs or []:
        table.add_row(str(d.time), str(d.core_id), d.message, d.reason, ", ".join(d.queue_state))
    console.print(table)


def _animate_result(result: SimulationResult, delay: float, console: Console) -> None:
    """
    Tick-by-tick replay built from the run's snapshots.
    """
    snapshots = result.snapshots or []
    if not snapshots:
        console.print("[red]No execution to animate.[/red]")
        return

    console.print(f"[bold]Replaying run[/bold] (duration {result.makespan} time units)")
    console.print("[dim]Press Ctrl+C to skip animation.[/dim]")

    for snap in snapshots:
        cores = "  ".join(
            f"C{i}:" + ("[dim]idle[/dim]" if pid == IDLE else f"[green]{pid}[/green]")
            for i, pid in enumerate(snap.running_pids)
        )
        ready = ", ".join(snap.ready_queue) or "-"
        console.print(f"t={snap.time:>4}: {cores}  ready: {ready}")
        time.sleep(delay)


def _print_report(report: AutoGradeReport, console: Console) -> None:
    table = Table(title="Auto-grader results", box=box.SIMPLE_HEAVY)
    table.add_column("Case")
    table.add_column("Result", justify="center")
    table.add_column("Avg TAT", justify="right")
    table.add_column("Avg WT", justify="right")
    table.add_column("Details")

    for r in report.results:
        status = "[green]PASS[/green]" if r.passed else "[red]FAIL[/red]"
        if r.error:
            details = f"error: {r.error}"
        elif "schedule_mismatch" in r.diff:
            mismatch = r.diff["schedule_mismatch"]
            details = f"schedule {mismatch['actual']} != {mismatch['expected']}"
        else:
            details = ", ".join(f"{k}={v:+.2f}" for k, v in r.diff.items())
        table.add_row(
            r.test_case_id,
            status,
            f"{r.actual_metrics.get('avg_turnaround', 0):.2f}",
            f"{r.actual_metrics.get('avg_waiting', 0):.2f}",
            details,
        )

    console.print(table)
    console.print(f"[bold]Score:[/bold] {report.score:.1f}% ({report.passed_tests}/{report.total_tests})")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    console = Console()

    try:
        if args.command == "run":
            processes = _load_checked(Path(args.workload))
            options = _options_from_args(args, enable_logging=args.log)
            result = run_algorithm(args.algorithm, processes, options)
            if args.step:
                try:
                    _animate_result(result, delay=args.step_delay, console=console)
                except KeyboardInterrupt:
                    console.print("[yellow]Animation skipped.[/yellow]")
            _print_result(args.algorithm, result, processes, console)
            if args.log:
                _print_decisions(result, console)
            return 0

        if args.command == "compare":
            processes = _load_checked(Path(args.workload))
            options = _options_from_args(args)

            summary_table = Table(title="Algorithm comparison", box=box.SIMPLE_HEAVY)
            summary_table.add_column("Algorithm")
            summary_table.add_column("Avg waiting", justify="right")
            summary_table.add_column("Avg turnaround", justify="right")
            summary_table.add_column("Avg response", justify="right")
            summary_table.add_column("Switches", justify="right")
            summary_table.add_column("Utilization", justify="right")

            for alg in args.algorithms:
                result = run_algorithm(alg, processes, options)
                summary = summarize_metrics(result.metrics)
                summary_table.add_row(
                    alg.upper(),
                    f"{summary['avg_waiting']:.2f}",
                    f"{summary['avg_turnaround']:.2f}",
                    f"{summary['avg_response']:.2f}",
                    str(result.metrics.context_switches),
                    f"{result.metrics.cpu_utilization:.1f}%",
                )

            console.print(summary_table)
            return 0

        if args.command == "grade":
            report = run_autograder(load_test_cases(Path(args.tests)))
            _print_report(report, console)
            return 0 if report.passed_tests == report.total_tests else 1

        if args.command == "optimize":
            processes = _load_checked(Path(args.workload))
            best = find_optimal_quantum(
                processes,
                SimulationOptions(core_count=args.cores),
                max_quantum_to_check=args.max_quantum,
                weight_wait=args.weight_wait,
                weight_switch=args.weight_switch,
            )
            table = Table(title="Round-robin quantum search", box=box.SIMPLE_HEAVY)
            table.add_column("Metric")
            table.add_column("Value", justify="right")
            table.add_row("Optimal quantum", str(best.optimal_quantum))
            table.add_row("Cost", f"{best.min_cost:.2f}")
            table.add_row("Avg waiting", f"{best.avg_waiting:.2f}")
            table.add_row("Avg turnaround", f"{best.avg_turnaround:.2f}")
            table.add_row("Context switches", str(best.context_switches))
            console.print(table)
            return 0

        if args.command == "generate":
            processes = generate_random_processes(
                args.count, (0, args.max_arrival), (1, args.max_burst), seed=args.seed
            )
            save_workload(processes, Path(args.output))
            console.print(f"Wrote {len(processes)} processes to [green]{args.output}[/green]")
            return 0
    except (ValueError, OSError) as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        console.print(f"[red]Error: {exc}[/red]")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
