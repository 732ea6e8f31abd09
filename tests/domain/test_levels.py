"""Tests for level ladders and transition rules."""

import pytest

from minicrm.domain.levels import (
    CUSTOMER_LADDER,
    SUPPLIER_LADDER,
    CustomerLevel,
    LevelLadder,
    SupplierLevel,
)


class TestLadders:
    def test_customer_order(self) -> None:
        assert CUSTOMER_LADDER.tiers == ("potential", "normal", "important", "vip")
        assert CUSTOMER_LADDER.lowest == CustomerLevel.POTENTIAL
        assert CUSTOMER_LADDER.top == CustomerLevel.VIP
        assert CUSTOMER_LADDER.initial == CustomerLevel.NORMAL

    def test_supplier_order(self) -> None:
        assert SUPPLIER_LADDER.tiers == ("normal", "premium", "strategic")
        assert SUPPLIER_LADDER.top == SupplierLevel.STRATEGIC

    def test_rank_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown level"):
            CUSTOMER_LADDER.rank("gold")

    def test_duplicate_tiers_rejected(self) -> None:
        with pytest.raises(ValueError):
            LevelLadder(tiers=("a", "a"), initial="a")

    def test_initial_must_be_a_tier(self) -> None:
        with pytest.raises(ValueError):
            LevelLadder(tiers=("a", "b"), initial="c")


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [("potential", "normal"), ("normal", "vip"), ("important", "vip")],
    )
    def test_upgrades_allowed(self, current: str, target: str) -> None:
        assert CUSTOMER_LADDER.can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [("vip", "important"), ("normal", "potential"), ("normal", "normal"), ("vip", "vip")],
    )
    def test_downgrades_and_same_refused(self, current: str, target: str) -> None:
        assert not CUSTOMER_LADDER.can_transition(current, target)

    def test_transition_map(self) -> None:
        assert SUPPLIER_LADDER.transitions() == {
            "normal": ["premium", "strategic"],
            "premium": ["strategic"],
            "strategic": [],
        }
