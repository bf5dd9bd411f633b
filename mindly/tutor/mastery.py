"""
Mastery Level Helpers.

Single-step movement along the ordered mastery scale, plus display helpers
for the CLI.
"""

from __future__ import annotations

from .types import MasteryLevel

MASTERY_ORDER: tuple[MasteryLevel, ...] = (
    MasteryLevel.NEW,
    MasteryLevel.FRAGILE,
    MasteryLevel.DEVELOPING,
    MasteryLevel.SOLID,
    MasteryLevel.MASTERED,
)

FRAGILE_LEVELS = frozenset({MasteryLevel.FRAGILE, MasteryLevel.DEVELOPING})


def advance_mastery(level: MasteryLevel) -> MasteryLevel:
    """Next level up, capped at MASTERED."""
    idx = MASTERY_ORDER.index(level)
    return MASTERY_ORDER[min(idx + 1, len(MASTERY_ORDER) - 1)]


def regress_mastery(level: MasteryLevel) -> MasteryLevel:
    """Next level down, floored at NEW."""
    idx = MASTERY_ORDER.index(level)
    return MASTERY_ORDER[max(idx - 1, 0)]


def is_fragile(level: MasteryLevel) -> bool:
    """Concepts the tutor should prioritise for retrieval practice."""
    return level in FRAGILE_LEVELS


def level_emoji(level: MasteryLevel) -> str:
    """Status glyph for CLI tables."""
    return {
        MasteryLevel.NEW: "○",
        MasteryLevel.FRAGILE: "◔",
        MasteryLevel.DEVELOPING: "◑",
        MasteryLevel.SOLID: "◕",
        MasteryLevel.MASTERED: "●",
    }[level]


def level_color(level: MasteryLevel) -> str:
    """Rich color for CLI display."""
    return {
        MasteryLevel.NEW: "dim",
        MasteryLevel.FRAGILE: "red",
        MasteryLevel.DEVELOPING: "yellow",
        MasteryLevel.SOLID: "cyan",
        MasteryLevel.MASTERED: "green",
    }[level]
