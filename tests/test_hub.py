"""Tests for the live-client broadcaster."""

import asyncio

import pytest

from osu_score_feed.hub import Broadcaster, EventType, FeedEvent
from osu_score_feed.models import FeedState, Score


def _score(score_id: int) -> Score:
    return Score(id=score_id, user_id=1, beatmap_id=1)


def test_snapshot_on_subscribe():
    state = FeedState()
    state.add_recent([_score(1), _score(2)])
    state.suspicious.append(_score(2))
    sub = Broadcaster(state).subscribe()

    assert [s["id"] for s in sub.snapshot["recent"]] == [1, 2]
    assert [s["id"] for s in sub.snapshot["suspicious"]] == [2]


def test_snapshot_without_suspicious_tracking():
    hub = Broadcaster(FeedState(), include_suspicious=False)
    assert "suspicious" not in hub.subscribe().snapshot
    hub.publish_suspicious(_score(1))


def test_full_queue_drops_without_blocking():
    hub = Broadcaster(FeedState(), queue_size=1)
    slow = hub.subscribe()
    hub.publish_scores([_score(1)])
    hub.publish_scores([_score(2)])

    assert slow.queue.qsize() == 1
    assert slow.dropped == 1
    assert slow.queue.get_nowait().scores[0].id == 1


def test_event_to_dict():
    assert FeedEvent(EventType.NEW_SCORES, [_score(1)]).to_dict()["scores"][0]["id"] == 1
    assert FeedEvent(EventType.NEW_SUSPICIOUS, [_score(3)]).to_dict() == {
        "type": "new_suspicious",
        "score": _score(3).to_dict(),
    }


@pytest.mark.asyncio
async def test_subscription_iterates_in_order_and_unsubscribes():
    hub = Broadcaster(FeedState())
    received = []

    async with hub.subscribe() as sub:
        assert hub.subscriber_count == 1
        hub.publish_scores([_score(1)])
        hub.publish_scores([_score(2)])
        async for event in sub:
            received.append(event.scores[0].id)
            if len(received) == 2:
                break

    assert received == [1, 2]
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_each_subscriber_gets_every_event():
    hub = Broadcaster(FeedState())
    first, second = hub.subscribe(), hub.subscribe()
    hub.publish_scores([_score(5)])

    a = await asyncio.wait_for(first.get(), timeout=1)
    b = await asyncio.wait_for(second.get(), timeout=1)
    assert a is b
