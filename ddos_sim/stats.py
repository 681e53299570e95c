"""Load accounting and per-step / per-run statistics.

``StepTally`` is the accounting side of the pipeline: it applies every
surviving packet to its destination's load as soon as the decision is made,
so later rate-limit checks in the same step see it. ``StepReport`` is the
immutable record handed to reporters, and ``ScenarioResult`` aggregates a
whole run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ddos_sim.nodes import NodeRegistry
from ddos_sim.packets import Packet


@dataclass(frozen=True)
class StepReport:
    """Outcome of one time step.

    Attributes
    ----------
    step:
        Zero-based time step index.
    legitimate_processed / attack_processed:
        Packets accepted by the destination node.
    legitimate_dropped / attack_dropped:
        Packets rejected by some mitigation stage.
    target_load / target_capacity:
        Load of the target node at the end of the step and its capacity.
    drops_by_stage:
        Drops attributed to the stage that rejected each packet.
    """

    step: int
    legitimate_processed: int
    attack_processed: int
    legitimate_dropped: int
    attack_dropped: int
    target_node_id: int
    target_load: int
    target_capacity: int
    drops_by_stage: Dict[str, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return self.legitimate_processed + self.attack_processed

    @property
    def dropped(self) -> int:
        return self.legitimate_dropped + self.attack_dropped

    @property
    def batch_size(self) -> int:
        return self.processed + self.dropped

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["processed"] = self.processed
        payload["dropped"] = self.dropped
        payload["batch_size"] = self.batch_size
        return payload


class StepTally:
    """Mutable counters for the step currently being processed."""

    def __init__(self, registry: NodeRegistry) -> None:
        self.registry = registry
        self.legitimate_processed = 0
        self.attack_processed = 0
        self.legitimate_dropped = 0
        self.attack_dropped = 0
        self.drops_by_stage: Dict[str, int] = {}

    def record(self, packet: Packet, dropped_by: Optional[str]) -> None:
        if dropped_by is None:
            self.registry.accept_packet(packet.destination_id)
            if packet.is_legitimate:
                self.legitimate_processed += 1
            else:
                self.attack_processed += 1
            return

        self.drops_by_stage[dropped_by] = self.drops_by_stage.get(dropped_by, 0) + 1
        if packet.is_legitimate:
            self.legitimate_dropped += 1
        else:
            self.attack_dropped += 1

    def to_report(self, step: int, target_node_id: int) -> StepReport:
        target = self.registry.node(target_node_id)
        return StepReport(
            step=step,
            legitimate_processed=self.legitimate_processed,
            attack_processed=self.attack_processed,
            legitimate_dropped=self.legitimate_dropped,
            attack_dropped=self.attack_dropped,
            target_node_id=target_node_id,
            target_load=target.current_load,
            target_capacity=target.capacity,
            drops_by_stage=dict(self.drops_by_stage),
        )


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator) / float(denominator) if denominator else 0.0


@dataclass
class ScenarioResult:
    """Every step report of one scenario run, in order."""

    label: str
    reports: List[StepReport] = field(default_factory=list)
    enabled: Tuple[str, ...] = ()
    seed: Optional[int] = None

    def append(self, report: StepReport) -> None:
        self.reports.append(report)

    def __len__(self) -> int:
        return len(self.reports)

    def totals(self) -> Dict[str, int]:
        keys = ("legitimate_processed", "attack_processed", "legitimate_dropped", "attack_dropped")
        totals = {key: int(sum(getattr(r, key) for r in self.reports)) for key in keys}
        totals["processed"] = totals["legitimate_processed"] + totals["attack_processed"]
        totals["dropped"] = totals["legitimate_dropped"] + totals["attack_dropped"]
        return totals

    def summary(self) -> Dict[str, Any]:
        """Totals plus effectiveness ratios for comparing mitigation setups."""
        totals = self.totals()
        legit_total = totals["legitimate_processed"] + totals["legitimate_dropped"]
        attack_total = totals["attack_processed"] + totals["attack_dropped"]

        if self.reports:
            loads = np.array([r.target_load for r in self.reports], dtype=np.float64)
            capacities = np.array([r.target_capacity for r in self.reports], dtype=np.float64)
            utilisation = np.divide(loads, capacities, out=np.zeros_like(loads), where=capacities > 0)
            mean_utilisation = float(utilisation.mean())
            peak_load = int(loads.max())
        else:
            mean_utilisation = 0.0
            peak_load = 0

        return {
            "label": self.label,
            "enabled": list(self.enabled),
            "seed": self.seed,
            "steps": len(self.reports),
            **totals,
            "attack_drop_rate": _ratio(totals["attack_dropped"], attack_total),
            "legitimate_drop_rate": _ratio(totals["legitimate_dropped"], legit_total),
            "legitimate_delivery_rate": _ratio(totals["legitimate_processed"], legit_total),
            "mean_target_utilisation": mean_utilisation,
            "peak_target_load": peak_load,
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per step; stage drop counts are flattened to ``dropped_<stage>`` columns."""
        rows = []
        for report in self.reports:
            row = report.to_dict()
            for stage, count in row.pop("drops_by_stage").items():
                row[f"dropped_{stage}"] = count
            rows.append(row)
        frame = pd.DataFrame(rows)
        stage_columns = [c for c in frame.columns if c.startswith("dropped_")]
        if stage_columns:
            frame[stage_columns] = frame[stage_columns].fillna(0).astype(int)
        return frame


def summary_frame(results: Dict[str, ScenarioResult]) -> pd.DataFrame:
    """Side-by-side summary of several runs, indexed by scenario label."""
    frame = pd.DataFrame([result.summary() for result in results.values()])
    if frame.empty:
        return frame
    return frame.set_index("label")


__all__ = ["ScenarioResult", "StepReport", "StepTally", "summary_frame"]
