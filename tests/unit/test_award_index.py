"""Unit tests for the badge award index."""

from __future__ import annotations

import logging

from vca.gamification.award_index import AwardRecord, build_award_index


def _award(award_id: str, user_id: str | None = None, project_id: str | None = None) -> AwardRecord:
    return AwardRecord(id=award_id, badge_id="b1", user_id=user_id, project_id=project_id)


class TestBuildAwardIndex:
    def test_groups_by_target(self):
        index = build_award_index(
            [_award("a1", user_id="u1"), _award("a2", project_id="p1"), _award("a3", user_id="u1")]
        )
        assert [a.id for a in index.awards_for_user("u1")] == ["a1", "a3"]
        assert [a.id for a in index.awards_for_project("p1")] == ["a2"]
        assert index.anomalies == []

    def test_every_well_formed_award_lands_in_exactly_one_grouping(self):
        awards = [_award(f"u{i}", user_id=f"user{i % 3}") for i in range(7)]
        awards += [_award(f"p{i}", project_id=f"proj{i % 2}") for i in range(4)]
        index = build_award_index(awards)
        assert len(index) == len(awards)
        user_ids = {a.id for group in index.by_user.values() for a in group}
        project_ids = {a.id for group in index.by_project.values() for a in group}
        assert user_ids.isdisjoint(project_ids)

    def test_repeat_awards_are_all_kept(self):
        index = build_award_index([_award("a1", user_id="u1"), _award("a2", user_id="u1")])
        assert index.count_for_user("u1") == 2

    def test_missing_target_is_an_anomaly(self, caplog):
        with caplog.at_level(logging.WARNING):
            index = build_award_index([_award("bad")])
        assert [a.id for a in index.anomalies] == ["bad"]
        assert len(index) == 0
        assert "bad" in caplog.text

    def test_two_targets_is_an_anomaly_not_double_counted(self):
        index = build_award_index([_award("both", user_id="u1", project_id="p1")])
        assert index.awards_for_user("u1") == []
        assert index.awards_for_project("p1") == []
        assert [a.id for a in index.anomalies] == ["both"]

    def test_unknown_target_lookups_are_empty(self):
        index = build_award_index([])
        assert index.awards_for_user("nobody") == []
        assert index.count_for_user("nobody") == 0
