"""Rendering and persistence of simulation results.

The simulation core never prints; these helpers turn ``StepReport`` records
into console text and JSON / NDJSON / CSV artifacts.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import pandas as pd
from openpyxl import Workbook

from ddos_sim.config import ScenarioConfig
from ddos_sim.stats import ScenarioResult, StepReport, summary_frame

SEPARATOR = "-" * 34


def _timestamp() -> str:
    """Return an ISO-8601 timestamp with UTC timezone."""
    return datetime.now(timezone.utc).isoformat()


def format_banner(scenario: ScenarioConfig) -> str:
    return (
        "=== DDoS Attack Simulation ===\n"
        f"Network configuration: {scenario.num_nodes} nodes, "
        f"{scenario.num_attackers} attackers, target node: {scenario.target_node_id}"
    )


def format_scenario_header(label: str) -> str:
    return f"\n=== {label} ==="


def format_step_report(report: StepReport) -> str:
    return "\n".join(
        (
            f"Time step: {report.step}",
            f"Packets processed: {report.processed} "
            f"(Legitimate: {report.legitimate_processed}, Attack: {report.attack_processed})",
            f"Packets dropped: {report.dropped} "
            f"(Legitimate: {report.legitimate_dropped}, Attack: {report.attack_dropped})",
            f"Target node load: {report.target_load}/{report.target_capacity}",
            SEPARATOR,
        )
    )


def console_reporter(label: str, report: StepReport) -> None:
    print(format_step_report(report))


def format_summary(results: Dict[str, ScenarioResult]) -> str:
    frame = summary_frame(results)
    if frame.empty:
        return "No scenarios were run."
    columns = [
        "processed",
        "dropped",
        "attack_drop_rate",
        "legitimate_drop_rate",
        "mean_target_utilisation",
    ]
    return frame[columns].to_string(float_format=lambda v: f"{v:.3f}")


def results_payload(scenario: ScenarioConfig, results: Dict[str, ScenarioResult], seed=None) -> dict:
    return {
        "generated_at": _timestamp(),
        "seed": seed,
        "scenario": {
            "num_nodes": scenario.num_nodes,
            "num_attackers": scenario.num_attackers,
            "target_node_id": scenario.target_node_id,
            "steps": scenario.steps,
            "attack_intensity": scenario.attack_intensity,
            "legitimate_traffic": scenario.legitimate_traffic,
        },
        "results": {
            label: {
                "summary": result.summary(),
                "steps": [report.to_dict() for report in result.reports],
            }
            for label, result in results.items()
        },
    }


def write_json_report(json_path, scenario: ScenarioConfig, results: Dict[str, ScenarioResult], seed=None,
                      *, quiet: bool = False) -> None:
    """Dump scenario parameters, per-run summaries and every step report as one JSON document."""

    if not json_path:
        return

    payload = results_payload(scenario, results, seed)
    try:
        path = Path(json_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        if not quiet:
            print(f"Wrote JSON report to {path}")
    except OSError as exc:
        print(f"Warning: Failed to write JSON output to {json_path}: {exc}")


def write_csv_report(csv_path, results: Dict[str, ScenarioResult], *, quiet: bool = False) -> None:
    """Write every step of every scenario as one CSV table with a ``scenario`` column."""

    if not csv_path:
        return

    frames = []
    for label, result in results.items():
        frame = result.to_frame()
        frame.insert(0, "scenario", label)
        frames.append(frame)
    if not frames:
        return

    try:
        path = Path(csv_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        table = pd.concat(frames, ignore_index=True)
        stage_columns = [c for c in table.columns if c.startswith("dropped_")]
        if stage_columns:
            table[stage_columns] = table[stage_columns].fillna(0).astype(int)
        table.to_csv(path, index=False)
        if not quiet:
            print(f"Wrote CSV report to {path}")
    except OSError as exc:
        print(f"Warning: Failed to write CSV output to {csv_path}: {exc}")


def write_xlsx_report(xlsx_path, scenario: ScenarioConfig, results: Dict[str, ScenarioResult], seed=None,
                      *, quiet: bool = False) -> None:
    """Write a workbook with run_info, summary and steps sheets."""

    if not xlsx_path:
        return

    workbook = Workbook()
    info_sheet = workbook.active
    info_sheet.title = "run_info"
    info_sheet.append(["generated_utc", _timestamp()])
    info_sheet.append(["seed", seed])
    for key, value in results_payload(scenario, {}, seed)["scenario"].items():
        info_sheet.append([key, value])

    summaries = [result.summary() for result in results.values()]
    if summaries:
        sheet = workbook.create_sheet("summary")
        headers = [key for key in summaries[0] if key != "enabled"]
        sheet.append(headers + ["enabled"])
        for row in summaries:
            sheet.append([row[key] for key in headers] + [", ".join(row["enabled"])])

        sheet = workbook.create_sheet("steps")
        step_headers: List[str] = ["scenario"]
        rows = []
        for label, result in results.items():
            for record in result.to_frame().to_dict(orient="records"):
                record = {"scenario": label, **record}
                for key in record:
                    if key not in step_headers:
                        step_headers.append(key)
                rows.append(record)
        sheet.append(step_headers)
        for record in rows:
            sheet.append([record.get(key, 0) for key in step_headers])

    try:
        path = Path(xlsx_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)
        if not quiet:
            print(f"Wrote workbook to {path}")
    except OSError as exc:
        print(f"Warning: Failed to write workbook to {xlsx_path}: {exc}")


def step_event_log(path: Path) -> Tuple[Callable[[str, StepReport], None], Callable[[], None]]:
    """Open an append-only NDJSON trail of step reports.

    Returns ``(log_step, close)``. ``log_step`` has the ``Reporter`` signature,
    writing one ``{"ts", "event": "step", "scenario", ...report}`` line per
    call. An existing file is appended to.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fp = path.open("a", encoding="utf-8")

    def log_step(label: str, report: StepReport) -> None:
        event = {"ts": _timestamp(), "event": "step", "scenario": label, **report.to_dict()}
        fp.write(json.dumps(event, separators=(",", ":")) + "\n")
        fp.flush()

    def close() -> None:
        os.fsync(fp.fileno())
        fp.close()

    return log_step, close


__all__ = [
    "console_reporter",
    "format_banner",
    "format_scenario_header",
    "format_step_report",
    "format_summary",
    "results_payload",
    "step_event_log",
    "write_csv_report",
    "write_json_report",
    "write_xlsx_report",
]
