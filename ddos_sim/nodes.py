"""Node registry for the simulated network.

Nodes are created with sequential ids. The first ``num_attackers`` ids are
attackers and the target node gets an elevated capacity. Capacity is
advisory: ``accept_packet`` never refuses, callers that want enforcement
check ``can_handle_packet`` first (the rate-limiting stage does).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from ddos_sim.config import ConfigError


@dataclass(slots=True)
class Node:
    """One network node and its per-step load counter."""

    id: int
    capacity: int
    is_attacker: bool = False
    current_load: int = 0

    def can_handle_packet(self) -> bool:
        return self.current_load < self.capacity

    def accept_packet(self) -> None:
        self.current_load += 1

    def reset_load(self) -> None:
        self.current_load = 0


def build_full_mesh(num_nodes: int) -> List[Tuple[int, ...]]:
    """Return the adjacency list of a fully-connected graph without self loops."""
    return [tuple(j for j in range(num_nodes) if j != i) for i in range(num_nodes)]


class NodeRegistry:
    """Owns every node of one scenario run, indexed by id."""

    def __init__(self, nodes: List[Node]) -> None:
        self._nodes: Dict[int, Node] = {node.id: node for node in nodes}
        self._order: Tuple[int, ...] = tuple(node.id for node in nodes)
        self.connections: List[Tuple[int, ...]] = build_full_mesh(len(nodes))

    @classmethod
    def build(
        cls,
        num_nodes: int,
        num_attackers: int,
        target_node_id: int,
        *,
        target_capacity: int = 1000,
        base_capacity: int = 500,
    ) -> "NodeRegistry":
        if num_nodes < 1:
            raise ConfigError(f"num_nodes must be >= 1, got {num_nodes}")
        if num_attackers < 0:
            raise ConfigError(f"num_attackers must be >= 0, got {num_attackers}")
        nodes = [
            Node(
                id=i,
                capacity=target_capacity if i == target_node_id else base_capacity,
                is_attacker=i < num_attackers,
            )
            for i in range(num_nodes)
        ]
        return cls(nodes)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Node]:
        return (self._nodes[node_id] for node_id in self._order)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node id: {node_id}") from None

    def can_handle_packet(self, node_id: int) -> bool:
        return self.node(node_id).can_handle_packet()

    def accept_packet(self, node_id: int) -> None:
        self.node(node_id).accept_packet()

    def reset_load(self, node_id: int) -> None:
        self.node(node_id).reset_load()

    def reset_loads(self) -> None:
        for node in self._nodes.values():
            node.reset_load()

    def attackers(self) -> List[Node]:
        return [node for node in self if node.is_attacker]

    def non_attackers(self) -> List[Node]:
        return [node for node in self if not node.is_attacker]

    def has_non_attacker(self) -> bool:
        return any(not node.is_attacker for node in self._nodes.values())

    def neighbors(self, node_id: int) -> Tuple[int, ...]:
        self.node(node_id)
        return self.connections[self._order.index(node_id)]


__all__ = ["Node", "NodeRegistry", "build_full_mesh"]
