#!/usr/bin/env python
import sys
import json
import time
import argparse
from pathlib import Path

from pydantic import ValidationError

from loopscope import Simulation, load_settings, parse_code_to_steps
from loopscope.config import AdmitMode
from loopscope.logging_setup import configure_logging
from loopscope.samples import SAMPLES, get_sample

def _read_source(args) -> str:
    if args.sample:
        try:
            return get_sample(args.sample)
        except KeyError as e:
            print(f"Error: {e.args[0]}")
            sys.exit(1)
    if not args.file:
        print("Error: give a source file or --sample NAME")
        sys.exit(1)
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: Could not find source file '{args.file}'")
        sys.exit(1)
    return path.read_text(encoding="utf-8")

def _add_source_args(p):
    p.add_argument("file", nargs="?", help="JavaScript source file")
    p.add_argument("--sample", help="Use a built-in sample instead of a file")
    p.add_argument("--log-level", default=None, help="loguru level (default from LOOPSCOPE_LOG_LEVEL)")

def cmd_steps(args) -> int:
    source = _read_source(args)
    steps = parse_code_to_steps(source, leaf_steps=not args.no_leaf_steps)
    if args.json:
        print(json.dumps([s.model_dump(mode="json") for s in steps], indent=2))
        return 0
    for i, step in enumerate(steps):
        queue = step.target_queue.value
        extra = f" delay={step.delay_ms}ms" if step.delay_ms else ""
        print(f"{i:>3} L{step.source_line:<3} {step.action.value:<20} {queue:<14}{extra} {step.description}")
    return 0

def cmd_run(args) -> int:
    source = _read_source(args)
    try:
        settings = load_settings(
            speed=args.speed,
            max_ticks=args.max_ticks,
            admit_mode=AdmitMode.Stepwise if args.stepwise else None,
        )
    except ValidationError as e:
        print(f"[Error] invalid option: {e.errors()[0]['msg']}")
        return 1
    sim = Simulation(settings)
    sim.load(source)

    def on_tick(task):
        if task is not None:
            print(f"[tick {sim.ticks:>3}] {task.queue.value:<14} {task.description}")
        if args.realtime:
            time.sleep(sim.tick_interval_ms / 1000.0)

    report = sim.run(on_tick=on_tick)
    print("\nTrace:")
    for event in report.trace:
        print(f"  {event}")
    print("\nConsole:")
    for line in report.console_output:
        print(f"  {line}")
    status = "finished" if report.finished else "stopped"
    print(f"\n[{status}] {report.ticks} ticks, {len(report.execution_order)} tasks executed")
    return 0 if report.finished else 2

def cmd_samples(args) -> int:
    for name, code in SAMPLES.items():
        first = code.splitlines()[0]
        print(f"{name:<12} {first}")
    return 0

def main():
    parser = argparse.ArgumentParser(description="loopscope - step through the JavaScript event loop")
    subparsers = parser.add_subparsers(dest="command")

    steps_parser = subparsers.add_parser("steps", help="Print the steps extracted from a program")
    _add_source_args(steps_parser)
    steps_parser.add_argument("--json", action="store_true", help="Emit steps as a JSON array")
    steps_parser.add_argument("--no-leaf-steps", action="store_true", help="Skip identifier and literal steps")

    run_parser = subparsers.add_parser("run", help="Simulate the event loop over a program")
    _add_source_args(run_parser)
    run_parser.add_argument("--stepwise", action="store_true", help="Admit one step per tick")
    run_parser.add_argument("--speed", type=float, default=None, help="Speed multiplier (> 0)")
    run_parser.add_argument("--max-ticks", type=int, default=None, help="Tick budget")
    run_parser.add_argument("--realtime", action="store_true", help="Sleep one tick interval between ticks")

    subparsers.add_parser("samples", help="List built-in samples")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return

    level = getattr(args, "log_level", None) or load_settings().log_level
    try:
        configure_logging(level)
    except ValueError as e:
        print(f"[Error] {e}")
        sys.exit(1)

    handlers = {"steps": cmd_steps, "run": cmd_run, "samples": cmd_samples}
    sys.exit(handlers[args.command](args))

if __name__ == "__main__":
    main()
