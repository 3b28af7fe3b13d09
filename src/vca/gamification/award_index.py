"""Badge award index: awards grouped by target.

An award targets either a user or a project. The two groupings are built
independently; an award that names neither target, or both, is a data
anomaly and lands in ``anomalies`` instead of either grouping so it is
never double-counted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwardRecord:
    id: str
    badge_id: str
    user_id: str | None = None
    project_id: str | None = None
    awarded_by: str | None = None
    created_at: datetime | None = None
    badge_name: str | None = None
    badge_color: str | None = None


@dataclass
class AwardIndex:
    by_user: dict[str, list[AwardRecord]] = field(default_factory=dict)
    by_project: dict[str, list[AwardRecord]] = field(default_factory=dict)
    anomalies: list[AwardRecord] = field(default_factory=list)

    def awards_for_user(self, user_id: str) -> list[AwardRecord]:
        return self.by_user.get(user_id, [])

    def awards_for_project(self, project_id: str) -> list[AwardRecord]:
        return self.by_project.get(project_id, [])

    def count_for_user(self, user_id: str) -> int:
        return len(self.by_user.get(user_id, []))

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_user.values()) + sum(len(v) for v in self.by_project.values())


def build_award_index(awards: Iterable[AwardRecord]) -> AwardIndex:
    """Group awards by user and by project, preserving input order within each target.

    Upstream queries sort by created_at descending, so each list is most
    recent first.
    """
    index = AwardIndex()
    for award in awards:
        has_user = bool(award.user_id)
        has_project = bool(award.project_id)
        if has_user == has_project:
            index.anomalies.append(award)
            continue
        if has_user:
            index.by_user.setdefault(award.user_id, []).append(award)  # type: ignore[arg-type]
        else:
            index.by_project.setdefault(award.project_id, []).append(award)  # type: ignore[arg-type]

    if index.anomalies:
        logger.warning(
            "award_target_anomaly: %d award(s) with no target or two targets: %s",
            len(index.anomalies),
            ", ".join(a.id for a in index.anomalies),
        )
    return index
