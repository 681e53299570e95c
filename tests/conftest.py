"""Shared fixtures for the simulator test suite."""

import pytest

from ddos_sim.config import MitigationConfig, ScenarioConfig
from ddos_sim.nodes import NodeRegistry


@pytest.fixture
def default_scenario():
    """The reference scenario: 50 nodes, 10 attackers, target 0."""
    return ScenarioConfig(
        num_nodes=50,
        num_attackers=10,
        target_node_id=0,
        steps=3,
        attack_intensity=2.0,
        legitimate_traffic=100,
    )


@pytest.fixture
def small_registry():
    """Four nodes, node 0 attacker, node 1 is a low-capacity target."""
    return NodeRegistry.build(4, 1, target_node_id=1, target_capacity=3, base_capacity=5)


@pytest.fixture
def all_on():
    return MitigationConfig.all()


# Pytest configuration

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


def pytest_collection_modifyitems(config, items):
    """Mark end-to-end runs as integration tests based on their names."""
    for item in items:
        if "integration" in item.name.lower() or "end_to_end" in item.name.lower():
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)
