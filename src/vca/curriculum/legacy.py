"""Adapter from the flat week-content shape to normalised week sections.

Older weeks carried their content as five markdown columns. At rest a week
now only has sections; flat payloads are converted here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class SectionSeed:
    slug: str
    title: str
    content: str | None
    sort_order: int
    is_system: bool = True


# (flat field, slug, title) in display order. "demos" has no flat field.
SYSTEM_SECTIONS: tuple[tuple[str | None, str, str], ...] = (
    ("overview", "overview", "Overview"),
    ("prework", "prework", "Pre-work"),
    ("session_plan", "session-plan", "Session"),
    ("prompts", "prompts", "Prompts"),
    ("resources", "resources", "Resources"),
    (None, "demos", "Demos"),
)

SYSTEM_SLUGS = frozenset(slug for _, slug, _ in SYSTEM_SECTIONS)


class LegacyWeekContent(BaseModel):
    """The flat content columns of the legacy weeks table."""

    overview: str | None = None
    prework: str | None = None
    session_plan: str | None = None
    prompts: str | None = None
    resources: str | None = None


def slugify(title: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim dashes."""
    return _SLUG_STRIP.sub("-", title.lower()).strip("-")


def system_section_seeds(legacy: LegacyWeekContent | None = None) -> list[SectionSeed]:
    """Build the system sections for a new week, filled from flat content when given."""
    values = legacy.model_dump() if legacy is not None else {}
    seeds = []
    for position, (field_name, slug, title) in enumerate(SYSTEM_SECTIONS):
        content = values.get(field_name) if field_name else None
        seeds.append(SectionSeed(slug=slug, title=title, content=content or None, sort_order=position))
    return seeds


def section_updates(legacy: LegacyWeekContent) -> dict[str, str | None]:
    """slug -> new content for the flat fields the caller actually set."""
    updates = {}
    for field_name, slug, _ in SYSTEM_SECTIONS:
        if field_name and field_name in legacy.model_fields_set:
            updates[slug] = getattr(legacy, field_name) or None
    return updates
