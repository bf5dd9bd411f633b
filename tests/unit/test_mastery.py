"""
Unit tests for mastery level movement.
"""

import pytest

from mindly.tutor.mastery import (
    MASTERY_ORDER,
    advance_mastery,
    is_fragile,
    level_color,
    level_emoji,
    regress_mastery,
)
from mindly.tutor.types import MasteryLevel


class TestMasteryMovement:
    @pytest.mark.parametrize(
        "level,expected",
        [
            (MasteryLevel.NEW, MasteryLevel.FRAGILE),
            (MasteryLevel.FRAGILE, MasteryLevel.DEVELOPING),
            (MasteryLevel.DEVELOPING, MasteryLevel.SOLID),
            (MasteryLevel.SOLID, MasteryLevel.MASTERED),
            (MasteryLevel.MASTERED, MasteryLevel.MASTERED),
        ],
    )
    def test_advance_is_one_step_and_capped(self, level, expected):
        assert advance_mastery(level) == expected

    def test_regress_floors_at_new(self):
        assert regress_mastery(MasteryLevel.SOLID) == MasteryLevel.DEVELOPING
        assert regress_mastery(MasteryLevel.NEW) == MasteryLevel.NEW

    def test_order_is_total(self):
        assert MASTERY_ORDER[0] == MasteryLevel.NEW
        assert MASTERY_ORDER[-1] == MasteryLevel.MASTERED
        assert len(set(MASTERY_ORDER)) == len(MasteryLevel)


class TestFragility:
    def test_only_fragile_and_developing_are_fragile(self):
        fragile = {level for level in MasteryLevel if is_fragile(level)}
        assert fragile == {MasteryLevel.FRAGILE, MasteryLevel.DEVELOPING}

    def test_display_helpers_cover_every_level(self):
        for level in MasteryLevel:
            assert level_emoji(level)
            assert level_color(level)
