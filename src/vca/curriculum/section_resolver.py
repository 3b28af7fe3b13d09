"""Decide which week sections a viewer sees and which tab opens first."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

DEMOS_SLUG = "demos"


class SectionLike(Protocol):
    slug: str
    title: str
    content: str | None
    sort_order: int


@dataclass
class SectionView:
    sections: list = field(default_factory=list)
    default_slug: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.sections


def resolve_sections(sections: Iterable[SectionLike], is_admin: bool) -> SectionView:
    """Order sections and hide empty ones from non-admin viewers.

    The demos section is always shown: it hosts participant submissions,
    not admin-authored content.
    """
    ordered = sorted(sections, key=lambda s: s.sort_order)
    if is_admin:
        visible = ordered
    else:
        visible = [s for s in ordered if (s.content and s.content.strip()) or s.slug == DEMOS_SLUG]
    return SectionView(
        sections=visible,
        default_slug=visible[0].slug if visible else None,
    )
