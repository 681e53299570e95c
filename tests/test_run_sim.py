"""CLI tests for the ``ddos-sim`` entry point."""
from __future__ import annotations

import csv
import json

import pytest

from ddos_sim import run_sim


def test_no_command_prints_help(capsys):
    assert run_sim.main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_run_writes_json(tmp_path, capsys):
    out = tmp_path / "run.json"
    code = run_sim.main(["run", "--steps", "2", "--quiet", "--json-out", str(out)])
    assert code == 0
    assert capsys.readouterr().out == ""

    payload = json.loads(out.read_text(encoding="utf-8"))
    entry = payload["results"]["Without Mitigation"]
    assert len(entry["steps"]) == 2
    assert entry["steps"][0]["batch_size"] == 11100
    assert payload["seed"] == run_sim.CONFIG["SEED"]


def test_run_prints_step_reports(capsys):
    code = run_sim.main(["run", "--steps", "1", "--target", "20", "--rate-limit", "--ip-filter"])
    assert code == 0
    out = capsys.readouterr().out
    assert "=== DDoS Attack Simulation ===" in out
    assert "Network configuration: 50 nodes, 10 attackers, target node: 20" in out
    assert "=== With Rate Limiting + IP Filtering ===" in out
    assert "Time step: 0" in out
    assert "Target node load: 1000/1000" in out


def test_invalid_topology_reports_error(capsys):
    code = run_sim.main(["run", "--nodes", "5", "--attackers", "5", "--quiet"])
    assert code == 1
    assert capsys.readouterr().out.startswith("Error:")


def test_compare_writes_csv_and_ndjson(tmp_path, capsys):
    csv_path = tmp_path / "compare.csv"
    ndjson_path = tmp_path / "compare.ndjson"
    code = run_sim.main([
        "compare", "--steps", "2", "--nodes", "20", "--attackers", "4", "--target", "10",
        "--quiet", "--csv-out", str(csv_path), "--ndjson-out", str(ndjson_path),
    ])
    assert code == 0

    # the summary table is printed even in quiet mode
    out = capsys.readouterr().out
    assert "With All Mitigation Techniques" in out

    with csv_path.open(encoding="utf-8", newline="") as fh:
        rows = list(csv.DictReader(fh))
    assert len({row["scenario"] for row in rows}) == 6
    assert len(rows) == 6 * 2

    events = [json.loads(line) for line in ndjson_path.read_text(encoding="utf-8").splitlines()]
    assert len(events) == 6 * 2
    assert {e["event"] for e in events} == {"step"}
    assert events[0]["scenario"] == "Without Mitigation"


def test_log_dir_receives_json_records(tmp_path):
    log_dir = tmp_path / "logs"
    code = run_sim.main(["run", "--steps", "1", "--quiet", "--ip-filter", "--log-dir", str(log_dir)])
    assert code == 0

    (log_file,) = log_dir.glob("ddos_sim-run-*.log")
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    finished = [r for r in records if r["msg"].startswith("Finished scenario")]
    assert finished[0]["scenario"] == "With IP Filtering"
    assert finished[0]["steps"] == 1


@pytest.mark.parametrize("intensity", ["nan", "inf"])
def test_non_finite_intensity_reports_error(intensity, capsys):
    code = run_sim.main(["run", "--steps", "1", "--quiet", "--intensity", intensity])
    assert code == 1
    assert capsys.readouterr().out.startswith("Error: attack_intensity must be a finite number")
