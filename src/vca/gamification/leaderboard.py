"""Leaderboard ranker: badge holders ranked by badge count, then community votes.

Only users holding at least one user-targeted award are seeded. Votes on
demos by users outside that set are ignored, so a participant with votes
but no badges never appears.

Ordering: badge_count DESC, vote_total DESC. Exact ties keep seed order
(first-seen award order); callers should not rely on it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from vca.gamification.award_index import AwardIndex
from vca.gamification.vote_tally import VoteRecord, totals_by_author

DEFAULT_LEADERBOARD_SIZE = 20


@dataclass(frozen=True)
class ProfileSummary:
    id: str
    name: str
    avatar_url: str | None = None


@dataclass
class LeaderboardEntry:
    user_id: str
    profile: ProfileSummary | None
    badge_count: int
    vote_total: int = 0
    rank: int = 0


def rank_leaderboard(
    index: AwardIndex,
    votes: Iterable[VoteRecord],
    demo_authors: Mapping[str, str],
    profiles: Mapping[str, ProfileSummary] | None = None,
    size: int = DEFAULT_LEADERBOARD_SIZE,
) -> list[LeaderboardEntry]:
    """Build the ranked, truncated leaderboard.

    Args:
        index: Award index; only ``by_user`` is consulted.
        votes: Every vote row (demo_id, value).
        demo_authors: demo_id -> author user_id.
        profiles: user_id -> display summary, optional.
        size: Maximum number of entries returned.
    """
    profiles = profiles or {}

    entries: dict[str, LeaderboardEntry] = {}
    for user_id, awards in index.by_user.items():
        entries[user_id] = LeaderboardEntry(
            user_id=user_id,
            profile=profiles.get(user_id),
            badge_count=len(awards),
        )

    for author_id, total in totals_by_author(votes, demo_authors).items():
        entry = entries.get(author_id)
        if entry is not None:
            entry.vote_total += total

    # sorted() is stable, so exact ties keep seed order.
    ranked = sorted(entries.values(), key=lambda e: (-e.badge_count, -e.vote_total))
    ranked = ranked[: max(size, 0)]
    for position, entry in enumerate(ranked, start=1):
        entry.rank = position
    return ranked
