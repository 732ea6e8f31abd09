"""Ordered business tiers and their transition rules.

A level may only move to a strictly higher tier, and the top tier is
final. Transition maps are derived from the ladder order so each entity
type declares its tiers exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CustomerLevel(StrEnum):
    """Customer tiers, lowest first."""

    POTENTIAL = "potential"
    NORMAL = "normal"
    IMPORTANT = "important"
    VIP = "vip"


class SupplierLevel(StrEnum):
    """Supplier tiers, lowest first."""

    NORMAL = "normal"
    PREMIUM = "premium"
    STRATEGIC = "strategic"


@dataclass(frozen=True)
class LevelLadder:
    """An ordered set of tiers.

    Attributes:
        tiers: Tier values from lowest to highest.
        initial: Tier assigned to a new entity that arrives without one.
    """

    tiers: tuple[str, ...]
    initial: str

    def __post_init__(self) -> None:
        if len(set(self.tiers)) != len(self.tiers):
            msg = f"Duplicate tiers in ladder: {self.tiers}"
            raise ValueError(msg)
        if self.initial not in self.tiers:
            msg = f"Initial tier {self.initial!r} is not one of {self.tiers}"
            raise ValueError(msg)

    @property
    def lowest(self) -> str:
        return self.tiers[0]

    @property
    def top(self) -> str:
        return self.tiers[-1]

    def rank(self, level: str) -> int:
        """Position of *level* in the ladder (0 = lowest).

        Raises:
            ValueError: If *level* is not a tier of this ladder.
        """
        try:
            return self.tiers.index(str(level))
        except ValueError:
            msg = f"Unknown level {level!r}; expected one of {list(self.tiers)}"
            raise ValueError(msg) from None

    def transitions(self) -> dict[str, list[str]]:
        """Allowed targets per tier, in the shape of a transition map."""
        return {tier: list(self.tiers[i + 1 :]) for i, tier in enumerate(self.tiers)}

    def can_transition(self, current: str, target: str) -> bool:
        """Check whether moving from *current* to *target* is a strict upgrade."""
        return self.rank(target) > self.rank(current)


CUSTOMER_LADDER = LevelLadder(
    tiers=tuple(CustomerLevel),
    initial=CustomerLevel.NORMAL,
)

SUPPLIER_LADDER = LevelLadder(
    tiers=tuple(SupplierLevel),
    initial=SupplierLevel.NORMAL,
)
