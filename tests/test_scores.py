"""Tests for score normalization and filtering."""

import copy

from osu_score_feed.scores import matches_filters, newest_first, normalize_and_filter, normalize_score, score_id
from osu_score_feed.models import Score


def _raw(**overrides) -> dict:
    data = {
        "id": 1,
        "user_id": 2,
        "beatmap_id": 3,
        "mods": [{"acronym": "HD"}, {"acronym": "DT", "settings": {"speed_change": 1.5}}],
        "pp": "245.61",
        "ended_at": "2024-05-01T10:00:00Z",
    }
    data.update(overrides)
    return data


def test_created_at_falls_back_to_ended_at():
    assert normalize_score(_raw())["created_at"] == "2024-05-01T10:00:00Z"


def test_created_at_kept_when_present():
    data = normalize_score(_raw(created_at="2024-04-01T00:00:00Z"))
    assert data["created_at"] == "2024-04-01T00:00:00Z"


def test_mod_objects_projected_to_acronyms():
    assert normalize_score(_raw())["mods"] == ["HD", "DT"]


def test_missing_mods_become_empty_list():
    data = _raw()
    del data["mods"]
    assert normalize_score(data)["mods"] == []


def test_pp_coercion():
    assert normalize_score(_raw())["pp"] == 245.61
    assert normalize_score(_raw(pp=None))["pp"] == 0.0
    assert normalize_score(_raw(pp="n/a"))["pp"] == 0.0
    assert normalize_score(_raw(pp="nan"))["pp"] == 0.0
    assert normalize_score(_raw(pp=float("inf")))["pp"] == 0.0
    assert normalize_score(_raw(pp="-inf"))["pp"] == 0.0
    data = _raw()
    del data["pp"]
    assert normalize_score(data)["pp"] == 0.0


def test_normalize_is_idempotent():
    once = normalize_score(_raw())
    twice = normalize_score(copy.deepcopy(once))
    assert twice == once

    once = normalize_score(_raw(pp="nan"))
    assert normalize_score(copy.deepcopy(once)) == once


def test_matches_filters_pp_range_inclusive():
    score = Score(id=1, user_id=1, beatmap_id=1, pp=200.0)
    assert matches_filters(score, min_pp=200, max_pp=300)
    assert not matches_filters(score, min_pp=200.01)
    assert not matches_filters(score, max_pp=199.99)
    assert matches_filters(score, min_pp=0)


def test_matches_filters_requires_all_mods():
    score = Score(id=1, user_id=1, beatmap_id=1, mods=["HD", "DT", "HR"])
    assert matches_filters(score, mods=["HD", "DT"])
    assert matches_filters(score, mods=["hd"])
    assert not matches_filters(score, mods=["HD", "FL"])


def test_normalize_and_filter_skips_records_without_id():
    scores = normalize_and_filter([_raw(), {"pp": 10}, "garbage"])
    assert [s.id for s in scores] == [1]


def test_normalize_and_filter_skips_non_numeric_ids():
    scores = normalize_and_filter([_raw(id="not-a-number"), _raw(id=True), _raw(id="42")])
    assert [s.id for s in scores] == [42]


def test_score_id():
    assert score_id({"id": 7}) == 7
    assert score_id({"id": "7"}) == 7
    assert score_id({"id": "x"}) is None
    assert score_id({"id": None}) is None
    assert score_id({}) is None
    assert score_id(["id"]) is None


def test_newest_first():
    scores = [
        Score(id=1, user_id=1, beatmap_id=1, created_at="2024-01-01T00:00:00Z"),
        Score(id=2, user_id=1, beatmap_id=1, created_at="2024-03-01T00:00:00Z"),
        Score(id=3, user_id=1, beatmap_id=1, created_at=None),
        Score(id=4, user_id=1, beatmap_id=1, created_at="2024-02-01T00:00:00+00:00"),
    ]
    assert [s.id for s in newest_first(scores)] == [2, 4, 1, 3]
