"""Vote tally: net score per demo and per demo author.

Pure functions over already-fetched rows. A demo with no votes is absent
from the tally; callers read scores with ``tally.get(demo_id, 0)``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class VoteRecord:
    demo_id: str
    value: int


def tally_votes(votes: Iterable[VoteRecord]) -> dict[str, int]:
    """Group votes by demo and sum their values. Net scores may be negative."""
    totals: dict[str, int] = defaultdict(int)
    for vote in votes:
        totals[vote.demo_id] += vote.value
    return dict(totals)


def totals_by_author(
    votes: Iterable[VoteRecord],
    demo_authors: Mapping[str, str],
) -> dict[str, int]:
    """Sum net scores across every demo a user authored.

    ``demo_authors`` maps demo_id -> user_id. Votes on demos with no known
    author are dropped.
    """
    totals: dict[str, int] = defaultdict(int)
    for demo_id, score in tally_votes(votes).items():
        author = demo_authors.get(demo_id)
        if author is None:
            continue
        totals[author] += score
    return dict(totals)
