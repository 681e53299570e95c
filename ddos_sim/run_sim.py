"""
Unified CLI entrypoint for the DDoS mitigation simulator.

Supports subcommands:
- run: simulate one mitigation setup (toggle strategies with flags)
- compare: run the six standard setups side by side

Defaults come from ``ddos_sim.config.CONFIG`` after ``DDOS_SIM_*``
environment overrides; command-line options win over both.
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ddos_sim.config import CONFIG, ConfigError, MitigationConfig, ScenarioConfig, configure_logging
from ddos_sim.logging_utils import close_file_loggers, configure_file_logger
from ddos_sim.report import (
    console_reporter,
    format_banner,
    format_scenario_header,
    format_summary,
    step_event_log,
    write_csv_report,
    write_json_report,
    write_xlsx_report,
)
from ddos_sim.runner import STANDARD_SCENARIOS, ScenarioRunner
from ddos_sim.stats import ScenarioResult, StepReport


def _add_scenario_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--nodes", type=int, default=CONFIG["NUM_NODES"], help="Total number of nodes")
    parser.add_argument("--attackers", type=int, default=CONFIG["NUM_ATTACKERS"], help="Number of attacker nodes")
    parser.add_argument("--target", type=int, default=CONFIG["TARGET_NODE_ID"], help="Target node id")
    parser.add_argument("--steps", type=int, default=CONFIG["SIM_STEPS"], help="Simulation steps")
    parser.add_argument("--intensity", type=float, default=CONFIG["ATTACK_INTENSITY"],
                        help="Attack traffic intensity (multiplier of attacker capacity)")
    parser.add_argument("--legit", type=int, default=CONFIG["LEGITIMATE_TRAFFIC"],
                        help="Legitimate packets per step")
    parser.add_argument("--seed", type=int, default=CONFIG["SEED"], help="Random seed for reproducibility")
    parser.add_argument("--json-out", help="Write full results as JSON to this path")
    parser.add_argument("--csv-out", help="Write per-step rows as CSV to this path")
    parser.add_argument("--ndjson-out", help="Append one NDJSON event per step to this path")
    parser.add_argument("--xlsx-out", help="Write run info, summaries and steps to an Excel workbook")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-step console output")
    parser.add_argument("--log-level", default=CONFIG["LOG_LEVEL"], help="Logging level")
    parser.add_argument("--log-dir", help="Also write JSON log records to a timestamped file in this directory")


def _scenario_from_args(args, mitigation: MitigationConfig) -> ScenarioConfig:
    scenario = ScenarioConfig(
        num_nodes=args.nodes,
        num_attackers=args.attackers,
        target_node_id=args.target,
        steps=args.steps,
        attack_intensity=args.intensity,
        legitimate_traffic=args.legit,
        target_capacity=CONFIG["TARGET_CAPACITY"],
        base_capacity=CONFIG["BASE_CAPACITY"],
        mitigation=mitigation,
    )
    scenario.validate()
    return scenario


def _simulate(args, scenario: ScenarioConfig, setups: List[MitigationConfig]) -> Dict[str, ScenarioResult]:
    log_step = close_log = None
    if args.ndjson_out:
        log_step, close_log = step_event_log(Path(args.ndjson_out))

    def reporter(label: str, report: StepReport) -> None:
        if not args.quiet:
            console_reporter(label, report)
        if log_step is not None:
            log_step(label, report)

    results: Dict[str, ScenarioResult] = {}
    try:
        if not args.quiet:
            print(format_banner(scenario))
        for mitigation in setups:
            if not args.quiet:
                print(format_scenario_header(mitigation.label))
            runner = ScenarioRunner(scenario.with_mitigation(mitigation), seed=args.seed)
            results[mitigation.label] = runner.run(reporter)
    finally:
        if close_log is not None:
            close_log()

    write_json_report(args.json_out, scenario, results, args.seed, quiet=args.quiet)
    write_csv_report(args.csv_out, results, quiet=args.quiet)
    write_xlsx_report(args.xlsx_out, scenario, results, args.seed, quiet=args.quiet)
    return results


def run_command(args) -> int:
    """Simulate a single mitigation setup."""
    mitigation = MitigationConfig(
        rate_limiting=args.rate_limit or CONFIG["RATE_LIMITING"],
        ip_filtering=args.ip_filter or CONFIG["IP_FILTERING"],
        deep_packet_inspection=args.dpi or CONFIG["DEEP_PACKET_INSPECTION"],
        traffic_pattern_analysis=args.pattern_analysis or CONFIG["TRAFFIC_PATTERN_ANALYSIS"],
    )
    scenario = _scenario_from_args(args, mitigation)
    _simulate(args, scenario, [mitigation])
    return 0


def compare_command(args) -> int:
    """Run every standard setup and print a summary table."""
    scenario = _scenario_from_args(args, MitigationConfig.none())
    results = _simulate(args, scenario, list(STANDARD_SCENARIOS))
    print()
    print(format_summary(results))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DDoS attack simulation with configurable mitigation strategies",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Simulate one mitigation setup")
    _add_scenario_options(run_parser)
    run_parser.add_argument("--rate-limit", action="store_true", help="Enable rate limiting")
    run_parser.add_argument("--ip-filter", action="store_true", help="Enable IP filtering")
    run_parser.add_argument("--dpi", action="store_true", help="Enable deep packet inspection")
    run_parser.add_argument("--pattern-analysis", action="store_true", help="Enable traffic pattern analysis")
    run_parser.set_defaults(func=run_command)

    compare_parser = subparsers.add_parser("compare", help="Run the standard mitigation comparison")
    _add_scenario_options(compare_parser)
    compare_parser.set_defaults(func=compare_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging("ddos-sim", args.log_level)
    if args.log_dir:
        log_path = configure_file_logger(
            args.command,
            Path(args.log_dir),
            level=getattr(logging, args.log_level.upper(), logging.INFO),
        )
        if not args.quiet:
            print(f"Logging JSON records to {log_path}")

    try:
        return args.func(args)
    except ConfigError as exc:
        print(f"Error: {exc}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    finally:
        close_file_loggers()


if __name__ == "__main__":
    raise SystemExit(main())
