"""Packet record and signature markers."""

from __future__ import annotations

from dataclasses import dataclass

LEGITIMATE_SIGNATURE = "legitimate"
ATTACK_MARKER = "attack"


def attack_signature(attacker_id: int) -> str:
    """Signature shared by every packet one attacker emits, across all steps."""
    return f"{ATTACK_MARKER}_{attacker_id}"


@dataclass(frozen=True, slots=True)
class Packet:
    """A single logical packet.

    ``is_legitimate`` is ground truth for statistics. IP filtering is the
    only stage that consults it.
    """

    source_id: int
    destination_id: int
    is_legitimate: bool
    timestamp: int
    signature: str = ""


__all__ = ["ATTACK_MARKER", "LEGITIMATE_SIGNATURE", "Packet", "attack_signature"]
