"""Mitigation pipeline: ordered, independently toggled filter stages.

Stage order is fixed: IP filtering, deep packet inspection, rate limiting,
traffic pattern analysis. The first stage that drops a packet ends its
evaluation, so later stages never update their counters for it. Survivors
are accepted by the destination immediately, which feeds the rate-limit
check of the next packet in the same step.

Counters in ``TrackingState`` are cumulative for the whole run and are
never reset between steps. Each run must get its own ``TrackingState``.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ddos_sim.config import CONFIG, MitigationConfig
from ddos_sim.logging_utils import Metrics, get_logger
from ddos_sim.nodes import NodeRegistry
from ddos_sim.packets import ATTACK_MARKER, Packet
from ddos_sim.stats import StepReport, StepTally

LOGGER = get_logger("mitigation")


@dataclass(slots=True)
class TrackingState:
    """Cross-step counters shared by the filter stages of one run."""

    source_packet_count: Dict[int, int] = field(default_factory=dict)
    signature_count: Dict[str, int] = field(default_factory=dict)

    def count_source(self, source_id: int) -> int:
        count = self.source_packet_count.get(source_id, 0) + 1
        self.source_packet_count[source_id] = count
        return count

    def count_signature(self, signature: str) -> int:
        count = self.signature_count.get(signature, 0) + 1
        self.signature_count[signature] = count
        return count

    def source_count(self, source_id: int) -> int:
        return self.source_packet_count.get(source_id, 0)


@dataclass(frozen=True)
class Thresholds:
    """Drop thresholds; a counter must strictly exceed its threshold.

    Pipelines built without explicit thresholds read them from ``CONFIG``,
    so ``DDOS_SIM_*_THRESHOLD`` overrides reach library callers too.
    """

    ip_filter: int = 100
    dpi_signature: int = 50
    pattern_source: int = 200
    pattern_window_steps: int = 5

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Thresholds":
        return cls(
            ip_filter=cfg["IP_FILTER_THRESHOLD"],
            dpi_signature=cfg["DPI_SIGNATURE_THRESHOLD"],
            pattern_source=cfg["PATTERN_SOURCE_THRESHOLD"],
            pattern_window_steps=cfg["PATTERN_WINDOW_STEPS"],
        )


class MitigationStage(abc.ABC):
    """One filter stage. ``evaluate`` returns True to drop the packet."""

    name: str = "base"

    @abc.abstractmethod
    def evaluate(self, packet: Packet, state: TrackingState, step: int) -> bool:
        """Decide on ``packet``, updating ``state`` as a side effect."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class IpFilterStage(MitigationStage):
    """Drops attack traffic from a source once its cumulative count passes the threshold."""

    name = "ip_filtering"

    def __init__(self, threshold: int = 100) -> None:
        self.threshold = threshold

    def evaluate(self, packet: Packet, state: TrackingState, step: int) -> bool:
        if packet.is_legitimate:
            return False
        count = state.count_source(packet.source_id)
        if count == self.threshold + 1:
            LOGGER.debug(
                "Source %d crossed IP filter threshold at step %d",
                packet.source_id,
                step,
                extra={"stage": self.name, "source_id": packet.source_id, "step": step},
            )
        return count > self.threshold


class DeepPacketInspectionStage(MitigationStage):
    """Counts every signature it sees; drops attack-marked signatures past the threshold."""

    name = "deep_packet_inspection"

    def __init__(self, threshold: int = 50, marker: str = ATTACK_MARKER) -> None:
        self.threshold = threshold
        self.marker = marker

    def evaluate(self, packet: Packet, state: TrackingState, step: int) -> bool:
        count = state.count_signature(packet.signature)
        if self.marker not in packet.signature:
            return False
        if count == self.threshold + 1:
            LOGGER.debug(
                "Signature %s crossed DPI threshold at step %d",
                packet.signature,
                step,
                extra={"stage": self.name, "signature": packet.signature, "step": step},
            )
        return count > self.threshold


class RateLimitStage(MitigationStage):
    """Drops packets whose destination has already reached capacity this step."""

    name = "rate_limiting"

    def __init__(self, registry: NodeRegistry) -> None:
        self.registry = registry

    def evaluate(self, packet: Packet, state: TrackingState, step: int) -> bool:
        return not self.registry.can_handle_packet(packet.destination_id)


class TrafficPatternStage(MitigationStage):
    """Drops recent packets from sources with a heavy cumulative history.

    Reads the source counter maintained by IP filtering and never
    increments it, so with IP filtering disabled this stage sees zero
    for every source and never drops.
    """

    name = "traffic_pattern_analysis"

    def __init__(self, source_threshold: int = 200, window_steps: int = 5) -> None:
        self.source_threshold = source_threshold
        self.window_steps = window_steps

    def evaluate(self, packet: Packet, state: TrackingState, step: int) -> bool:
        recent = (step - packet.timestamp) < self.window_steps
        return recent and state.source_count(packet.source_id) > self.source_threshold


def build_stages(
    config: MitigationConfig,
    registry: NodeRegistry,
    thresholds: Optional[Thresholds] = None,
) -> List[MitigationStage]:
    """Instantiate the enabled stages in their fixed evaluation order."""
    thresholds = thresholds or Thresholds.from_config(CONFIG)
    stages: List[MitigationStage] = []
    if config.ip_filtering:
        stages.append(IpFilterStage(thresholds.ip_filter))
    if config.deep_packet_inspection:
        stages.append(DeepPacketInspectionStage(thresholds.dpi_signature))
    if config.rate_limiting:
        stages.append(RateLimitStage(registry))
    if config.traffic_pattern_analysis:
        stages.append(TrafficPatternStage(thresholds.pattern_source, thresholds.pattern_window_steps))
    return stages


class MitigationPipeline:
    """Runs packet batches through the enabled stages and accounts the survivors."""

    def __init__(
        self,
        config: MitigationConfig,
        registry: NodeRegistry,
        *,
        state: Optional[TrackingState] = None,
        thresholds: Optional[Thresholds] = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.state = state if state is not None else TrackingState()
        self.thresholds = thresholds or Thresholds.from_config(CONFIG)
        self.stages = build_stages(config, registry, self.thresholds)
        self.metrics = Metrics()

    def evaluate(self, packet: Packet, step: int) -> Optional[str]:
        """Return the name of the stage that drops ``packet``, or None to accept it."""
        for stage in self.stages:
            if stage.evaluate(packet, self.state, step):
                return stage.name
        return None

    def process(self, batch: Iterable[Packet], step: int, target_node_id: int) -> StepReport:
        tally = StepTally(self.registry)
        for packet in batch:
            dropped_by = self.evaluate(packet, step)
            tally.record(packet, dropped_by)
            if dropped_by is None:
                self.metrics.counter("accepted").inc()
            else:
                self.metrics.counter(f"dropped.{dropped_by}").inc()
        report = tally.to_report(step, target_node_id)
        self.metrics.gauge("target_load").set(report.target_load)
        return report


__all__ = [
    "DeepPacketInspectionStage",
    "IpFilterStage",
    "MitigationConfig",
    "MitigationPipeline",
    "MitigationStage",
    "RateLimitStage",
    "Thresholds",
    "TrackingState",
    "TrafficPatternStage",
    "build_stages",
]
