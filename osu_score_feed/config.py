"""Runtime settings for the feed, with environment overrides."""

import os
from dataclasses import dataclass, fields

ENV_PREFIX = "OSU_"


@dataclass
class Settings:
    client_id: str = ""
    client_secret: str = ""
    ruleset: str = "osu"

    # Polling
    poll_interval: float = 5.0
    page_size: int = 50
    recent_capacity: int = 50

    # Startup backfill
    backfill_pages: int = 5
    backfill_delay: float = 1.5

    # Credentials are refreshed this many seconds before they expire
    token_margin: float = 60.0

    # Suspicious-play heuristic
    track_suspicious: bool = True
    suspicious_mod: str = "FL"
    suspicious_pp: float = 100.0

    # Batched lookups
    batch_size: int = 50
    cache_size: int = 10_000
    cache_ttl: float | None = 3600.0

    # Search
    search_limit: int = 10
    search_max_records: int = 10_000
    search_time_budget: float = 25.0
    user_scores_limit: int = 100

    subscriber_queue_size: int = 100

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from ``OSU_<FIELD>`` environment variables.

        Unset variables keep their defaults. ``OSU_CACHE_TTL=0`` disables expiry.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            values[f.name] = _coerce(f.name, raw, getattr(cls, f.name))
        return cls(**values)


def _coerce(name: str, raw: str, default):
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float) or default is None:
        value = float(raw)
        if name == "cache_ttl" and value <= 0:
            return None
        return value
    return raw
