"""Tests for step statistics, console rendering and result writers."""
from __future__ import annotations

import json

from ddos_sim.config import MitigationConfig, ScenarioConfig
from ddos_sim.report import (
    SEPARATOR,
    format_banner,
    format_scenario_header,
    format_step_report,
    format_summary,
    results_payload,
    step_event_log,
    write_csv_report,
    write_json_report,
    write_xlsx_report,
)
from ddos_sim.stats import ScenarioResult, StepReport, summary_frame


def _report(step=0, **overrides):
    values = dict(
        step=step,
        legitimate_processed=90,
        attack_processed=10,
        legitimate_dropped=10,
        attack_dropped=990,
        target_node_id=0,
        target_load=100,
        target_capacity=1000,
        drops_by_stage={"ip_filtering": 900, "rate_limiting": 100},
    )
    values.update(overrides)
    return StepReport(**values)


def _result(label="With All Mitigation Techniques", steps=2):
    return ScenarioResult(label, [_report(step) for step in range(steps)], enabled=MitigationConfig.all().enabled)


def test_step_report_properties():
    report = _report()
    assert report.processed == 100
    assert report.dropped == 1000
    assert report.batch_size == 1100
    payload = report.to_dict()
    assert payload["batch_size"] == 1100
    assert payload["drops_by_stage"] == {"ip_filtering": 900, "rate_limiting": 100}


def test_format_step_report():
    lines = format_step_report(_report(step=4)).splitlines()
    assert lines == [
        "Time step: 4",
        "Packets processed: 100 (Legitimate: 90, Attack: 10)",
        "Packets dropped: 1000 (Legitimate: 10, Attack: 990)",
        "Target node load: 100/1000",
        SEPARATOR,
    ]


def test_banner_and_header():
    banner = format_banner(ScenarioConfig(target_node_id=7))
    assert banner.splitlines() == [
        "=== DDoS Attack Simulation ===",
        "Network configuration: 50 nodes, 10 attackers, target node: 7",
    ]
    assert format_scenario_header("Without Mitigation") == "\n=== Without Mitigation ==="


def test_summary_ratios():
    summary = _result(steps=2).summary()
    assert summary["steps"] == 2
    assert summary["processed"] == 200
    assert summary["attack_drop_rate"] == 990 / 1000
    assert summary["legitimate_drop_rate"] == 0.1
    assert summary["legitimate_delivery_rate"] == 0.9
    assert summary["mean_target_utilisation"] == 0.1
    assert summary["peak_target_load"] == 100
    assert len(summary["enabled"]) == 4


def test_zero_capacity_utilisation_is_zero():
    result = ScenarioResult("x", [_report(target_capacity=0)])
    assert result.summary()["mean_target_utilisation"] == 0.0


def test_to_frame_flattens_stage_drops():
    result = ScenarioResult("mixed", [_report(0), _report(1, drops_by_stage={"ip_filtering": 1000})])
    frame = result.to_frame()
    assert list(frame["step"]) == [0, 1]
    assert list(frame["dropped_ip_filtering"]) == [900, 1000]
    assert list(frame["dropped_rate_limiting"]) == [100, 0]
    assert "drops_by_stage" not in frame.columns


def test_summary_frame_indexed_by_label():
    results = {"a": _result("a", 1), "b": _result("b", 3)}
    frame = summary_frame(results)
    assert list(frame.index) == ["a", "b"]
    assert list(frame["steps"]) == [1, 3]
    assert summary_frame({}).empty
    assert format_summary({}) == "No scenarios were run."
    assert "attack_drop_rate" in format_summary(results)


def test_write_json_report(tmp_path, capsys):
    path = tmp_path / "out" / "report.json"
    results = {"With All Mitigation Techniques": _result()}
    write_json_report(path, ScenarioConfig(steps=2), results, seed=3)
    assert "Wrote JSON report" in capsys.readouterr().out

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["seed"] == 3
    assert payload["scenario"]["steps"] == 2
    entry = payload["results"]["With All Mitigation Techniques"]
    assert len(entry["steps"]) == 2
    assert entry["summary"]["processed"] == 200


def test_write_json_report_skips_without_path(tmp_path):
    write_json_report(None, ScenarioConfig(), {"x": _result()})
    assert list(tmp_path.iterdir()) == []


def test_write_json_report_warns_on_failure(tmp_path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    write_json_report(blocker / "nested.json", ScenarioConfig(), {"x": _result()}, quiet=True)
    assert "Warning: Failed to write JSON output" in capsys.readouterr().out


def test_write_csv_report(tmp_path):
    path = tmp_path / "steps.csv"
    results = {
        "Without Mitigation": ScenarioResult("Without Mitigation", [_report(0, drops_by_stage={})]),
        "With IP Filtering": ScenarioResult("With IP Filtering", [_report(0, drops_by_stage={"ip_filtering": 7})]),
    }
    write_csv_report(path, results, quiet=True)

    lines = path.read_text(encoding="utf-8").splitlines()
    header = lines[0].split(",")
    assert header[0] == "scenario"
    assert "dropped_ip_filtering" in header
    assert len(lines) == 3
    column = header.index("dropped_ip_filtering")
    assert lines[1].split(",")[column] == "0"
    assert lines[2].split(",")[column] == "7"


def test_step_event_log_appends(tmp_path):
    path = tmp_path / "events" / "steps.ndjson"
    path.parent.mkdir()
    path.write_text('{"event": "earlier"}\n', encoding="utf-8")
    log_step, close = step_event_log(path)
    log_step("With IP Filtering", _report(0))
    log_step("With IP Filtering", _report(1))
    close()

    earlier, *events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert earlier == {"event": "earlier"}
    assert [e["step"] for e in events] == [0, 1]
    assert {e["event"] for e in events} == {"step"}
    assert {e["scenario"] for e in events} == {"With IP Filtering"}
    assert events[0]["drops_by_stage"] == {"ip_filtering": 900, "rate_limiting": 100}
    assert all("ts" in e for e in events)


def test_write_xlsx_report(tmp_path):
    from openpyxl import load_workbook

    path = tmp_path / "report.xlsx"
    results = {
        "Without Mitigation": ScenarioResult("Without Mitigation", [_report(0, drops_by_stage={})]),
        "With All Mitigation Techniques": _result(steps=2),
    }
    write_xlsx_report(path, ScenarioConfig(steps=2), results, seed=9, quiet=True)

    workbook = load_workbook(path)
    assert workbook.sheetnames == ["run_info", "summary", "steps"]
    info = {row[0]: row[1] for row in workbook["run_info"].iter_rows(values_only=True)}
    assert info["seed"] == 9
    assert info["num_nodes"] == 50

    summary_rows = list(workbook["summary"].iter_rows(values_only=True))
    assert summary_rows[0][0] == "label"
    assert summary_rows[0][-1] == "enabled"
    assert [row[0] for row in summary_rows[1:]] == list(results)

    step_rows = list(workbook["steps"].iter_rows(values_only=True))
    header = list(step_rows[0])
    assert len(step_rows) == 1 + 3
    column = header.index("dropped_ip_filtering")
    assert [row[column] for row in step_rows[1:]] == [0, 900, 900]


def test_results_payload_without_runs():
    payload = results_payload(ScenarioConfig(steps=4), {}, seed=None)
    assert payload["results"] == {}
    assert payload["seed"] is None
    assert payload["scenario"]["steps"] == 4
