"""Curriculum levels and their display styles.

Style tokens are static lookup data so the page layer never builds class
names by string concatenation.
"""

from __future__ import annotations

import enum


class Level(enum.IntEnum):
    FOUNDATION = 1
    INTERMEDIATE = 2
    ADVANCED = 3


LEVEL_NAMES: dict[Level, str] = {
    Level.FOUNDATION: "Level 1: Foundation",
    Level.INTERMEDIATE: "Level 2: Intermediate",
    Level.ADVANCED: "Level 3: Advanced",
}

LEVEL_STYLES: dict[Level, str] = {
    Level.FOUNDATION: "bg-level1",
    Level.INTERMEDIATE: "bg-level2",
    Level.ADVANCED: "bg-level3",
}

WEEK_STYLES: dict[int, str] = {n: f"bg-week{n}" for n in range(1, 11)}

FALLBACK_STYLE = "bg-muted"


def level_for_week(week_number: int) -> Level:
    """Weeks 1-3 are foundation, 4-5 intermediate, the rest advanced."""
    if week_number <= 3:
        return Level.FOUNDATION
    if week_number <= 5:
        return Level.INTERMEDIATE
    return Level.ADVANCED


def level_name(level: int) -> str:
    try:
        return LEVEL_NAMES[Level(level)]
    except ValueError:
        return "Unknown Level"


def level_style(level: int) -> str:
    try:
        return LEVEL_STYLES[Level(level)]
    except ValueError:
        return FALLBACK_STYLE


def week_style(week_number: int | None) -> str:
    if week_number is None:
        return FALLBACK_STYLE
    return WEEK_STYLES.get(week_number, FALLBACK_STYLE)
