"""Fan-out of feed events to connected live clients.

Each subscriber gets an initial snapshot and its own bounded queue. Publishing
never waits on a subscriber: when a queue is full the event is dropped for that
subscriber only.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

from osu_score_feed import console
from osu_score_feed.models import FeedState, Score


class EventType(str, Enum):
    NEW_SCORES = "new_scores"
    NEW_SUSPICIOUS = "new_suspicious"


@dataclass
class FeedEvent:
    type: EventType
    scores: list[Score]

    def to_dict(self) -> dict:
        if self.type == EventType.NEW_SUSPICIOUS:
            return {"type": self.type.value, "score": self.scores[0].to_dict()}
        return {"type": self.type.value, "scores": [s.to_dict() for s in self.scores]}


class Subscription:
    def __init__(self, hub: "Broadcaster", snapshot: dict, queue_size: int):
        self.hub = hub
        self.snapshot = snapshot
        self.queue: asyncio.Queue[FeedEvent] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0

    def offer(self, event: FeedEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    async def get(self) -> FeedEvent:
        return await self.queue.get()

    def close(self) -> None:
        self.hub.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> FeedEvent:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class Broadcaster:
    def __init__(self, state: FeedState, include_suspicious: bool = True, queue_size: int = 100):
        self.state = state
        self.include_suspicious = include_suspicious
        self.queue_size = queue_size
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def snapshot(self) -> dict:
        snapshot = {"recent": self.state.recent_snapshot()}
        if self.include_suspicious:
            snapshot["suspicious"] = self.state.suspicious_snapshot()
        return snapshot

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.snapshot(), self.queue_size)
        self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
            if sub.dropped:
                console.print(f"[dim]Subscriber left after {sub.dropped} dropped events.[/dim]")

    def publish(self, event: FeedEvent) -> None:
        for sub in list(self._subscribers):
            sub.offer(event)

    def publish_scores(self, scores: list[Score]) -> None:
        self.publish(FeedEvent(EventType.NEW_SCORES, list(scores)))

    def publish_suspicious(self, score: Score) -> None:
        if self.include_suspicious:
            self.publish(FeedEvent(EventType.NEW_SUSPICIOUS, [score]))
