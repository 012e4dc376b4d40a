"""Tests for the score data model."""

from datetime import datetime, timezone

from osu_score_feed.models import Credential, Cursor, FeedState, Score, ScorePage


def _payload(**overrides) -> dict:
    data = {
        "id": 42,
        "user_id": 7,
        "beatmap_id": 129891,
        "mods": ["HD", "DT"],
        "pp": 512.5,
        "created_at": "2024-03-01T12:00:00Z",
        "ruleset_id": 0,
        "accuracy": 0.9876,
        "rank": "S",
    }
    data.update(overrides)
    return data


def test_from_api_keeps_unknown_fields():
    score = Score.from_api(_payload())
    assert score.id == 42
    assert score.mods == ["HD", "DT"]
    assert score.extra == {"accuracy": 0.9876, "rank": "S"}


def test_to_dict_round_trips_extra_fields():
    meta = Score.from_api(_payload()).to_dict()
    assert meta["accuracy"] == 0.9876
    assert meta["rank"] == "S"
    assert meta["beatmap"] is None
    assert meta["user"] is None


def test_ids_taken_from_embedded_entities():
    score = Score.from_api(_payload(user_id=None, beatmap_id=None, user={"id": 3}, beatmap={"id": 9}))
    assert score.user_id == 3
    assert score.beatmap_id == 9


def test_created_at_dt():
    assert Score.from_api(_payload()).created_at_dt == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    assert Score.from_api(_payload(created_at=None)).created_at_dt.year == 1970
    assert Score.from_api(_payload(created_at=1700000000)).created_at_dt.year == 1970


def test_cursor_never_moves_backwards():
    cursor = Cursor()
    assert cursor.advance(10) is True
    assert cursor.advance(5) is False
    assert cursor.advance(10) is False
    assert cursor.last_id == 10


def test_recent_scores_capacity_drops_oldest():
    state = FeedState.with_capacity(50)
    state.add_recent([Score(id=i, user_id=1, beatmap_id=1) for i in range(1, 61)])
    assert len(state.recent) == 50
    assert state.recent[0].id == 11
    assert state.recent[-1].id == 60


def test_credential_validity():
    cred = Credential(token="abc", expires_at=240.0)
    assert cred.is_valid(239.0)
    assert not cred.is_valid(240.0)


def test_score_page_has_more():
    assert ScorePage(scores=[], cursor="abc").has_more
    assert not ScorePage(scores=[], cursor=None).has_more
    assert not ScorePage(scores=[], cursor="").has_more
