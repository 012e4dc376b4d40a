"""Typed data model for scores flowing through the feed."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

RECENT_CAPACITY = 50

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EntityKind(str, Enum):
    BEATMAP = "beatmap"
    USER = "user"


class ScoreType(str, Enum):
    BEST = "best"
    RECENT = "recent"


@dataclass
class Credential:
    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class Score:
    """A score record as returned by the API, after normalization."""

    id: int
    user_id: int | None
    beatmap_id: int | None
    mods: list[str] = field(default_factory=list)
    pp: float = 0.0
    created_at: str | None = None
    ruleset_id: int | None = None
    beatmap: dict | None = None
    beatmapset: dict | None = None
    user: dict | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "Score":
        """Build a Score from a normalized API payload.

        Fields the feed does not interpret are kept in ``extra`` so that
        ``to_dict`` republishes them unchanged.
        """
        known = {
            "id",
            "user_id",
            "beatmap_id",
            "mods",
            "pp",
            "created_at",
            "ruleset_id",
            "beatmap",
            "beatmapset",
            "user",
        }
        beatmap = data.get("beatmap") or None
        user = data.get("user") or None
        beatmap_id = data.get("beatmap_id")
        if beatmap_id is None and beatmap:
            beatmap_id = beatmap.get("id")
        user_id = data.get("user_id")
        if user_id is None and user:
            user_id = user.get("id")
        return cls(
            id=int(data["id"]),
            user_id=user_id,
            beatmap_id=beatmap_id,
            mods=list(data.get("mods") or []),
            pp=float(data.get("pp") or 0.0),
            created_at=data.get("created_at"),
            ruleset_id=data.get("ruleset_id"),
            beatmap=beatmap,
            beatmapset=data.get("beatmapset") or None,
            user=user,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict:
        """Serialize to the API's snake_case dict shape."""
        return {
            **self.extra,
            "id": self.id,
            "user_id": self.user_id,
            "beatmap_id": self.beatmap_id,
            "mods": list(self.mods),
            "pp": self.pp,
            "created_at": self.created_at,
            "ruleset_id": self.ruleset_id,
            "beatmap": self.beatmap,
            "beatmapset": self.beatmapset,
            "user": self.user,
        }

    @property
    def created_at_dt(self) -> datetime:
        """Parsed creation time; records without one sort as oldest."""
        if not self.created_at:
            return _EPOCH
        try:
            parsed = datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            return _EPOCH
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


@dataclass
class ScorePage:
    scores: list[dict]
    cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.cursor)


@dataclass
class Cursor:
    """Ingestion position: last processed score id plus a pagination token."""

    last_id: int = 0
    page_token: str | None = None

    def advance(self, score_id: int) -> bool:
        """Move forward to ``score_id``. Never moves backwards."""
        if score_id > self.last_id:
            self.last_id = score_id
            return True
        return False


@dataclass
class FeedState:
    """In-memory state shared by the poller, classifier and live clients."""

    cursor: Cursor = field(default_factory=Cursor)
    recent: deque[Score] = field(default_factory=lambda: deque(maxlen=RECENT_CAPACITY))
    suspicious: list[Score] = field(default_factory=list)

    @classmethod
    def with_capacity(cls, capacity: int) -> "FeedState":
        return cls(recent=deque(maxlen=capacity))

    def add_recent(self, scores: list[Score]) -> None:
        """Append an id-ordered batch; the deque drops the oldest past capacity."""
        self.recent.extend(scores)

    def has_suspicious(self, score_id: int) -> bool:
        return any(s.id == score_id for s in self.suspicious)

    def recent_snapshot(self) -> list[dict]:
        return [s.to_dict() for s in self.recent]

    def suspicious_snapshot(self) -> list[dict]:
        return [s.to_dict() for s in self.suspicious]
