"""Tests for the JSON log formatter, file logger and pipeline metrics."""

import json
import logging

from ddos_sim.logging_utils import (
    _RESERVED_ATTRS,
    JsonFormatter,
    Metrics,
    close_file_loggers,
    configure_file_logger,
    get_logger,
)


def _record(**extra):
    record = logging.LogRecord("ddos_sim.runner", logging.INFO, __file__, 1, "step %d done", (3,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JsonFormatter().format(_record(scenario="With IP Filtering", step=3)))
    assert payload["msg"] == "step 3 done"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "ddos_sim.runner"
    assert payload["scenario"] == "With IP Filtering"
    assert payload["step"] == 3
    assert "lineno" not in payload


def test_json_formatter_stringifies_unserialisable_values():
    payload = json.loads(JsonFormatter().format(_record(target=object())))
    assert payload["target"].startswith("<object object")


def test_component_loggers_are_package_children():
    assert get_logger().name == "ddos_sim"
    assert get_logger("runner").name == "ddos_sim.runner"
    assert get_logger("runner").parent is get_logger()


def test_file_logger_round_trip(tmp_path):
    path = configure_file_logger("unit", tmp_path / "logs")
    try:
        get_logger("mitigation").info("threshold crossed", extra={"stage": "ip_filtering"})
    finally:
        closed = close_file_loggers()
    assert closed == [path]
    (line,) = path.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["stage"] == "ip_filtering"
    assert record["logger"] == "ddos_sim.mitigation"


def test_metrics_snapshot():
    metrics = Metrics()
    metrics.counter("accepted").inc(4)
    metrics.counter("dropped.ip_filtering").inc(2)
    metrics.counter("dropped.rate_limiting").inc()
    metrics.gauge("target_load").set(4)
    assert metrics.counter("accepted") is metrics.counter("accepted")
    assert metrics.dropped_total() == 3
    assert metrics.snapshot() == {
        "accepted": 4,
        "dropped.ip_filtering": 2,
        "dropped.rate_limiting": 1,
        "target_load": 4,
    }


def test_reserved_attrs_are_record_attributes():
    record = _record()
    record.message = record.getMessage()
    record.asctime = "now"
    record.taskName = None
    assert _RESERVED_ATTRS <= set(vars(record))
