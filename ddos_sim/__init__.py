"""DDoS attack simulation with composable mitigation strategies.

Research code can import the main building blocks from ``ddos_sim``
without depending on the internal module layout.
"""

from .config import CONFIG, ConfigError, MitigationConfig, ScenarioConfig
from .mitigation import MitigationPipeline, Thresholds, TrackingState
from .nodes import Node, NodeRegistry
from .packets import Packet
from .runner import STANDARD_SCENARIOS, ScenarioRunner, compare_scenarios, run_scenario
from .stats import ScenarioResult, StepReport
from .traffic import TrafficGenerator

__all__ = [
    "CONFIG",
    "ConfigError",
    "MitigationConfig",
    "MitigationPipeline",
    "Node",
    "NodeRegistry",
    "Packet",
    "STANDARD_SCENARIOS",
    "ScenarioConfig",
    "ScenarioResult",
    "ScenarioRunner",
    "StepReport",
    "Thresholds",
    "TrackingState",
    "TrafficGenerator",
    "compare_scenarios",
    "run_scenario",
]
