"""Structured logging and per-pipeline counters for simulation runs.

Every module logs through a child of the ``ddos_sim`` logger. Records
propagate to the root handlers set up by ``configure_logging``; a JSON file
handler can be attached on top with ``configure_file_logger`` so each run
leaves a machine-readable trail of its ``extra=`` fields.
"""
import json, logging, time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

PACKAGE_LOGGER = "ddos_sim"

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "exc_info", "exc_text", "stack_info", "created",
    "msecs", "relativeCreated", "levelno", "levelname", "pathname", "filename",
    "module", "lineno", "funcName", "thread", "threadName", "processName", "process",
    "taskName", "message", "asctime",
))


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            try:
                json.dumps({key: value})
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)
        return json.dumps(payload)


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or ``ddos_sim.<component>`` when given."""
    if not component:
        return logging.getLogger(PACKAGE_LOGGER)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")


def configure_file_logger(label: str, log_dir: Path = Path("logs"), level: int = logging.INFO) -> Path:
    """Attach a JSON file handler for ``label`` to the package logger and return its path."""
    logger = get_logger()
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = time.strftime("%Y%m%d-%H%M%S", time.gmtime())
    path = log_dir / f"ddos_sim-{label}-{stamp}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return path


def close_file_loggers() -> List[Path]:
    """Detach and close every file handler on the package logger."""
    logger = get_logger()
    closed = []
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
            closed.append(Path(handler.baseFilename))
    return closed


# Counters and gauges kept per pipeline, never process-wide
@dataclass
class Counter:
    """Packets attributed to one outcome, e.g. ``dropped.ip_filtering``."""

    value: int = 0

    def inc(self, n: int = 1) -> int:
        self.value += n
        return self.value


@dataclass
class Gauge:
    """Last observed value, e.g. the target load at the end of a step."""

    value: float = 0

    def set(self, v: float) -> None:
        self.value = v


class Metrics:
    def __init__(self):
        self.counters: Dict[str, Counter] = {}
        self.gauges: Dict[str, Gauge] = {}

    def counter(self, name: str) -> Counter:
        return self.counters.setdefault(name, Counter())

    def gauge(self, name: str) -> Gauge:
        return self.gauges.setdefault(name, Gauge())

    def snapshot(self) -> Dict[str, float]:
        values: Dict[str, float] = {name: c.value for name, c in self.counters.items()}
        values.update({name: g.value for name, g in self.gauges.items()})
        return values

    def dropped_total(self) -> int:
        """Sum of every ``dropped.<stage>`` counter."""
        return sum(c.value for name, c in self.counters.items() if name.startswith("dropped."))
