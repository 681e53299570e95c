"""Per-step traffic synthesis: legitimate background plus attacker floods."""

from __future__ import annotations

import math
import random
from typing import List, Optional

from ddos_sim.config import ConfigError
from ddos_sim.logging_utils import get_logger
from ddos_sim.nodes import NodeRegistry
from ddos_sim.packets import LEGITIMATE_SIGNATURE, Packet, attack_signature

LOGGER = get_logger("traffic")


class TrafficGenerator:
    """Builds the packet batch for one time step.

    Batch order is legitimate packets first, then each attacker's flood in
    ascending attacker id. Rate limiting and the cumulative counters depend
    on this order, so it is part of the contract.
    """

    def __init__(self, registry: NodeRegistry, rng: Optional[random.Random] = None) -> None:
        self.registry = registry
        self.rng = rng or random.Random()
        self._node_ids = [node.id for node in registry]

    def _pick_legitimate_source(self) -> int:
        # Rejection sampling over all nodes; terminates because a
        # non-attacker was checked to exist before the loop is entered.
        while True:
            source_id = self._node_ids[self.rng.randrange(len(self._node_ids))]
            if not self.registry.node(source_id).is_attacker:
                return source_id

    def legitimate_packets(self, step: int, target_node_id: int, count: int) -> List[Packet]:
        if count < 0:
            raise ConfigError(f"legitimate traffic must be >= 0, got {count}")
        if count and not self.registry.has_non_attacker():
            raise ConfigError("Cannot generate legitimate traffic: every node is an attacker")
        return [
            Packet(self._pick_legitimate_source(), target_node_id, True, step, LEGITIMATE_SIGNATURE)
            for _ in range(count)
        ]

    def attack_packets(self, step: int, target_node_id: int, attack_intensity: float) -> List[Packet]:
        if not math.isfinite(attack_intensity) or attack_intensity < 0:
            raise ConfigError(f"attack intensity must be a finite number >= 0, got {attack_intensity}")
        packets: List[Packet] = []
        for attacker in self.registry.attackers():
            volume = math.floor(attack_intensity * attacker.capacity)
            signature = attack_signature(attacker.id)
            packets.extend(
                Packet(attacker.id, target_node_id, False, step, signature) for _ in range(volume)
            )
        return packets

    def generate(
        self,
        step: int,
        target_node_id: int,
        attack_intensity: float,
        legitimate_traffic: int,
    ) -> List[Packet]:
        batch = self.legitimate_packets(step, target_node_id, legitimate_traffic)
        legit_count = len(batch)
        batch.extend(self.attack_packets(step, target_node_id, attack_intensity))
        LOGGER.debug(
            "Generated step %d batch: %d legitimate, %d attack",
            step,
            legit_count,
            len(batch) - legit_count,
        )
        return batch


__all__ = ["TrafficGenerator"]
