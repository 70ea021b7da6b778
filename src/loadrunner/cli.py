#!/usr/bin/env python3
# cli.py — command line entry point for loadrunner

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from loadrunner.config import ConfigurationError, LoadConfig
from loadrunner.core import LoadRunner
from loadrunner.logging_config import setup_logging
from loadrunner.persistence import RunReporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loadrunner",
        description="Run a virtual-user script many times under a ramped concurrency "
        "and report latency/status statistics.",
        epilog="To pass arguments on to the script, finish with -- followed by them. "
        "A {runNum} argument is replaced by the current run number.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-s",
        "--script",
        required=True,
        help="Script to execute for every run",
    )
    parser.add_argument(
        "-n",
        "--num-users",
        type=int,
        default=1,
        help="Number of users (number of total runs)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=1,
        help="Concurrency of users",
    )
    parser.add_argument(
        "-r",
        "--ramp-up",
        type=float,
        default=1.0,
        help="Ramp up time to full concurrency (in seconds)",
    )
    parser.add_argument(
        "-b",
        "--before",
        default=None,
        help="Script to execute before the start of the test",
    )
    parser.add_argument(
        "--interpreter",
        default=sys.executable,
        help="Interpreter used to run the scripts; pass '' to execute them directly",
    )

    # Flow selection
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random number generator (otherwise generated)",
    )
    flows = parser.add_mutually_exclusive_group()
    flows.add_argument(
        "-f",
        "--flows",
        type=float,
        nargs="+",
        default=None,
        help="Relative weights of each flow; the chosen flow is passed as LR_FLOW_NUMBER",
    )
    flows.add_argument(
        "--pattern",
        type=int,
        nargs="+",
        default=None,
        help="Repeated pattern of flow numbers passed as LR_FLOW_NUMBER",
    )

    # Output & Logging
    parser.add_argument(
        "-o",
        "--output",
        action="store_true",
        help="Save logs, individual run output and the summary under --runs-dir",
    )
    parser.add_argument(
        "-p",
        "--profile",
        default=None,
        help="Profile name appended to the output directory name",
    )
    parser.add_argument(
        "--runs-dir",
        default="./runs",
        help="Parent directory for saved output",
    )
    parser.add_argument(
        "--tick",
        type=float,
        default=0.1,
        help="Scheduler tick interval in seconds",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging",
    )
    return parser


def split_script_args(argv: List[str]) -> tuple[List[str], List[str]]:
    if "--" in argv:
        i = argv.index("--")
        return argv[:i], argv[i + 1:]
    return argv, []


def parse_args(argv: Optional[List[str]] = None):
    own, script_args = split_script_args(list(sys.argv[1:] if argv is None else argv))
    args = build_parser().parse_args(own)
    args.script_args = script_args
    return args


def config_from_args(args) -> LoadConfig:
    return LoadConfig(
        script=args.script,
        script_args=tuple(args.script_args),
        total_runs=args.num_users,
        concurrency=args.concurrency,
        ramp_up_s=args.ramp_up,
        seed=args.seed,
        flow_weights=tuple(args.flows) if args.flows else None,
        flow_pattern=tuple(args.pattern) if args.pattern else None,
        before_script=args.before,
        interpreter=args.interpreter,
        output=args.output,
        profile=args.profile,
        runs_dir=args.runs_dir,
        tick_s=args.tick,
    )


async def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_level = "DEBUG" if args.debug else "INFO"

    try:
        config = config_from_args(args)
        reporter = RunReporter.create(config) if config.output else None
        setup_logging(
            level=log_level,
            log_file=os.path.join(reporter.output_dir, "loadrunner.log") if reporter else None,
        )
        runner = LoadRunner(config, reporter=reporter, use_progress_bar=not args.no_progress)
    except ConfigurationError as e:
        print(f"loadrunner: error: {e}", file=sys.stderr)
        return 2

    summary = await runner.run()
    logging.info(
        f"Finished {summary.total_runs} runs: "
        f"{summary.success_runs['duration']['count']} ok, "
        f"{summary.error_runs['duration']['count']} error"
    )
    return 0


def main():
    sys.exit(asyncio.run(run()))

if __name__ == "__main__":
    main()
