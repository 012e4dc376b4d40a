"""Normalization and filtering of raw score payloads."""

import math
from collections.abc import Iterable

from osu_score_feed.models import Score


def normalize_score(data: dict) -> dict:
    """Standardize a raw score payload in place and return it.

    - ``created_at`` falls back to ``ended_at``
    - mod objects (``{"acronym": "HD"}``) are projected to their acronym,
      a missing mod list becomes ``[]``
    - ``pp`` is coerced to float, 0.0 when absent or not numeric

    Applying it twice gives the same result as applying it once.
    """
    if not data.get("created_at") and data.get("ended_at"):
        data["created_at"] = data["ended_at"]

    mods = data.get("mods")
    if isinstance(mods, list):
        data["mods"] = [_mod_code(m) for m in mods if _mod_code(m)]
    else:
        data["mods"] = []

    data["pp"] = _to_float(data.get("pp"))
    return data


def _mod_code(mod) -> str:
    if isinstance(mod, dict):
        return str(mod.get("acronym") or mod.get("code") or "")
    return str(mod) if mod is not None else ""


def _to_float(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def score_id(raw) -> int | None:
    """The record's id as an int, or None when it is missing or not numeric."""
    if not isinstance(raw, dict) or isinstance(raw.get("id"), bool):
        return None
    try:
        return int(raw["id"])
    except (KeyError, TypeError, ValueError):
        return None


def matches_filters(
    score: Score,
    min_pp: float | None = None,
    max_pp: float | None = None,
    mods: Iterable[str] | None = None,
) -> bool:
    """Check the pp range (inclusive) and that all required mods are present."""
    if min_pp is not None and score.pp < min_pp:
        return False
    if max_pp is not None and score.pp > max_pp:
        return False
    if mods:
        have = {m.upper() for m in score.mods}
        if not all(m.upper() in have for m in mods):
            return False
    return True


def normalize_and_filter(
    raw_scores: Iterable[dict],
    min_pp: float | None = None,
    max_pp: float | None = None,
    mods: Iterable[str] | None = None,
) -> list[Score]:
    """Normalize raw payloads into Scores and keep those passing the filters."""
    required = list(mods or [])
    scores = []
    for raw in raw_scores:
        if score_id(raw) is None:
            continue
        try:
            score = Score.from_api(normalize_score(raw))
        except (AttributeError, TypeError, ValueError):
            # embedded beatmap/user of the wrong type
            continue
        if matches_filters(score, min_pp, max_pp, required):
            scores.append(score)
    return scores


def newest_first(scores: list[Score]) -> list[Score]:
    return sorted(scores, key=lambda s: s.created_at_dt, reverse=True)
