"""
Configuration constants for the DDoS mitigation simulator.

Single source of truth for scenario parameters, mitigation thresholds and
logging settings. Every key can be overridden through a ``DDOS_SIM_<KEY>``
environment variable; the merged result is validated at import time.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


ENV_PREFIX = "DDOS_SIM_"


class ConfigError(ValueError):
    """Raised when a scenario or CONFIG payload is unusable."""


# Default configuration - all required keys with correct types
CONFIG = {
    # Topology
    "NUM_NODES": 50,
    "NUM_ATTACKERS": 10,       # ids 0..NUM_ATTACKERS-1 are attackers
    "TARGET_NODE_ID": 0,

    # Run shape
    "SIM_STEPS": 10,
    "ATTACK_INTENSITY": 2.0,   # multiplier of each attacker's capacity
    "LEGITIMATE_TRAFFIC": 100, # legitimate packets per step
    "SEED": 2025,

    # Node capacities (packets per step)
    "TARGET_CAPACITY": 1000,
    "BASE_CAPACITY": 500,

    # Mitigation thresholds; all counters are cumulative for the run
    "IP_FILTER_THRESHOLD": 100,
    "DPI_SIGNATURE_THRESHOLD": 50,
    "PATTERN_SOURCE_THRESHOLD": 200,
    "PATTERN_WINDOW_STEPS": 5,

    # Mitigation toggles
    "RATE_LIMITING": False,
    "IP_FILTERING": False,
    "DEEP_PACKET_INSPECTION": False,
    "TRAFFIC_PATTERN_ANALYSIS": False,

    # Logging
    "LOG_LEVEL": "INFO",
}

_DEFAULTS = dict(CONFIG)


_REQUIRED_KEYS = {
    "NUM_NODES": int,
    "NUM_ATTACKERS": int,
    "TARGET_NODE_ID": int,
    "SIM_STEPS": int,
    "ATTACK_INTENSITY": float,
    "LEGITIMATE_TRAFFIC": int,
    "SEED": int,
    "TARGET_CAPACITY": int,
    "BASE_CAPACITY": int,
    "IP_FILTER_THRESHOLD": int,
    "DPI_SIGNATURE_THRESHOLD": int,
    "PATTERN_SOURCE_THRESHOLD": int,
    "PATTERN_WINDOW_STEPS": int,
    "RATE_LIMITING": bool,
    "IP_FILTERING": bool,
    "DEEP_PACKET_INSPECTION": bool,
    "TRAFFIC_PATTERN_ANALYSIS": bool,
    "LOG_LEVEL": str,
}

_NON_NEGATIVE_KEYS = (
    "NUM_ATTACKERS",
    "SIM_STEPS",
    "LEGITIMATE_TRAFFIC",
    "TARGET_CAPACITY",
    "BASE_CAPACITY",
    "IP_FILTER_THRESHOLD",
    "DPI_SIGNATURE_THRESHOLD",
    "PATTERN_SOURCE_THRESHOLD",
    "PATTERN_WINDOW_STEPS",
)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _check_topology(num_nodes: int, num_attackers: int, target_node_id: int) -> None:
    if num_nodes < 1:
        raise ConfigError(f"NUM_NODES must be >= 1, got {num_nodes}")
    if num_attackers < 0:
        raise ConfigError(f"NUM_ATTACKERS must be >= 0, got {num_attackers}")
    if num_attackers >= num_nodes:
        # Legitimate source selection needs at least one non-attacker to draw from.
        raise ConfigError(
            f"NUM_ATTACKERS ({num_attackers}) must be less than NUM_NODES ({num_nodes}); "
            "at least one non-attacker node is required"
        )
    if not 0 <= target_node_id < num_nodes:
        raise ConfigError(
            f"TARGET_NODE_ID must be in 0..{num_nodes - 1}, got {target_node_id}"
        )


def validate_config(cfg: Dict[str, Any]) -> None:
    """
    Ensure all required keys exist with correct types/ranges.
    Raise ConfigError("<reason>") on any violation.
    No return value on success.
    """
    missing_keys = set(_REQUIRED_KEYS.keys()) - set(cfg.keys())
    if missing_keys:
        raise ConfigError(f"CONFIG missing required keys: {', '.join(sorted(missing_keys))}")

    for key, expected_type in _REQUIRED_KEYS.items():
        value = cfg[key]
        if expected_type is int:
            # bool is an int subclass; do not let True slip through as a count
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"CONFIG[{key}] must be int, got {type(value).__name__}")
        elif expected_type is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"CONFIG[{key}] must be float, got {type(value).__name__}")
        elif not isinstance(value, expected_type):
            raise ConfigError(f"CONFIG[{key}] must be {expected_type.__name__}, got {type(value).__name__}")

    for key in _NON_NEGATIVE_KEYS:
        if cfg[key] < 0:
            raise ConfigError(f"CONFIG[{key}] must be >= 0, got {cfg[key]}")

    if not math.isfinite(cfg["ATTACK_INTENSITY"]) or cfg["ATTACK_INTENSITY"] < 0:
        raise ConfigError(f"CONFIG[ATTACK_INTENSITY] must be a finite number >= 0, got {cfg['ATTACK_INTENSITY']}")

    _check_topology(cfg["NUM_NODES"], cfg["NUM_ATTACKERS"], cfg["TARGET_NODE_ID"])

    if cfg["LOG_LEVEL"].upper() not in _LOG_LEVELS:
        raise ConfigError(f"CONFIG[LOG_LEVEL] must be one of {sorted(_LOG_LEVELS)}, got {cfg['LOG_LEVEL']!r}")


def _apply_env_overrides(cfg: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Apply ``DDOS_SIM_<KEY>`` environment overrides to config."""
    env = os.environ if environ is None else environ
    result = cfg.copy()

    for key, expected_type in _REQUIRED_KEYS.items():
        env_var = ENV_PREFIX + key
        if env_var not in env:
            continue
        env_value = env[env_var]
        try:
            if expected_type is bool:
                lowered = str(env_value).strip().lower()
                if lowered in {"1", "true", "yes", "on"}:
                    result[key] = True
                elif lowered in {"0", "false", "no", "off"}:
                    result[key] = False
                else:
                    raise ValueError(f"invalid boolean literal: {env_value}")
            elif expected_type is int:
                result[key] = int(env_value)
            elif expected_type is float:
                result[key] = float(env_value)
            else:
                result[key] = str(env_value).strip()
        except ValueError:
            raise ConfigError(f"Invalid {expected_type.__name__} value for {env_var}: {env_value}")

    return result


def load_config(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Return a validated copy of the defaults with environment overrides applied."""
    merged = _apply_env_overrides(_DEFAULTS, environ)
    validate_config(merged)
    return merged


STRATEGY_NAMES: Tuple[str, ...] = (
    "rate_limiting",
    "ip_filtering",
    "deep_packet_inspection",
    "traffic_pattern_analysis",
)

_STRATEGY_LABELS = {
    "rate_limiting": "Rate Limiting",
    "ip_filtering": "IP Filtering",
    "deep_packet_inspection": "Deep Packet Inspection",
    "traffic_pattern_analysis": "Traffic Pattern Analysis",
}


@dataclass(frozen=True)
class MitigationConfig:
    """Independent on/off switches for the four filter stages of a run."""

    rate_limiting: bool = False
    ip_filtering: bool = False
    deep_packet_inspection: bool = False
    traffic_pattern_analysis: bool = False

    @classmethod
    def none(cls) -> "MitigationConfig":
        return cls()

    @classmethod
    def all(cls) -> "MitigationConfig":
        return cls(True, True, True, True)

    @classmethod
    def only(cls, name: str) -> "MitigationConfig":
        if name not in STRATEGY_NAMES:
            raise ConfigError(f"Unknown mitigation strategy {name!r}; expected one of {', '.join(STRATEGY_NAMES)}")
        return cls(**{name: True})

    @property
    def enabled(self) -> Tuple[str, ...]:
        return tuple(name for name in STRATEGY_NAMES if getattr(self, name))

    @property
    def label(self) -> str:
        enabled = self.enabled
        if not enabled:
            return "Without Mitigation"
        if len(enabled) == len(STRATEGY_NAMES):
            return "With All Mitigation Techniques"
        return "With " + " + ".join(_STRATEGY_LABELS[name] for name in enabled)


@dataclass(frozen=True)
class ScenarioConfig:
    """Scalar parameters of one scenario run plus its mitigation toggles."""

    num_nodes: int = 50
    num_attackers: int = 10
    target_node_id: int = 0
    steps: int = 10
    attack_intensity: float = 2.0
    legitimate_traffic: int = 100
    target_capacity: int = 1000
    base_capacity: int = 500
    mitigation: MitigationConfig = field(default_factory=MitigationConfig)

    def validate(self) -> None:
        _check_topology(self.num_nodes, self.num_attackers, self.target_node_id)
        if self.steps < 0:
            raise ConfigError(f"steps must be >= 0, got {self.steps}")
        if not math.isfinite(self.attack_intensity) or self.attack_intensity < 0:
            raise ConfigError(f"attack_intensity must be a finite number >= 0, got {self.attack_intensity}")
        if self.legitimate_traffic < 0:
            raise ConfigError(f"legitimate_traffic must be >= 0, got {self.legitimate_traffic}")
        if self.target_capacity < 0 or self.base_capacity < 0:
            raise ConfigError("node capacities must be >= 0")

    def with_mitigation(self, mitigation: MitigationConfig) -> "ScenarioConfig":
        """Return a copy of this scenario using a different mitigation setup."""
        return replace(self, mitigation=mitigation)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ScenarioConfig":
        return cls(
            num_nodes=cfg["NUM_NODES"],
            num_attackers=cfg["NUM_ATTACKERS"],
            target_node_id=cfg["TARGET_NODE_ID"],
            steps=cfg["SIM_STEPS"],
            attack_intensity=float(cfg["ATTACK_INTENSITY"]),
            legitimate_traffic=cfg["LEGITIMATE_TRAFFIC"],
            target_capacity=cfg["TARGET_CAPACITY"],
            base_capacity=cfg["BASE_CAPACITY"],
            mitigation=MitigationConfig(
                rate_limiting=cfg["RATE_LIMITING"],
                ip_filtering=cfg["IP_FILTERING"],
                deep_packet_inspection=cfg["DEEP_PACKET_INSPECTION"],
                traffic_pattern_analysis=cfg["TRAFFIC_PATTERN_ANALYSIS"],
            ),
        )


# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

LOG_FILE: Optional[str] = os.getenv(ENV_PREFIX + "LOG_FILE")


def configure_logging(program_name: str, level_name: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    program_name: str
        Used to differentiate loggers per script.
    level_name: str, optional
        Overrides ``CONFIG["LOG_LEVEL"]``.
    """
    level = getattr(logging, (level_name or CONFIG["LOG_LEVEL"]).upper(), logging.INFO)
    log_format = f"{program_name} %(asctime)s %(levelname)s %(name)s %(message)s"

    handlers = []
    if LOG_FILE:
        log_path = Path(LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(level=level, format=log_format, handlers=handlers)
    logging.getLogger().name = program_name


# Apply environment overrides and validate
CONFIG = load_config()
