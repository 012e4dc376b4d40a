"""Fills in missing beatmap and user data on score records."""

import httpx

from osu_score_feed.fetcher import BatchFetcher
from osu_score_feed.models import EntityKind, Score


class ScoreEnricher:
    def __init__(self, fetcher: BatchFetcher):
        self.fetcher = fetcher

    async def enrich(self, client: httpx.AsyncClient, token: str, scores: list[Score]) -> list[Score]:
        """Attach beatmap/user entities to the scores that lack them.

        Scores are updated in place and returned. Fields that are already set
        are left alone; scores with no match stay as they are.
        """
        beatmap_ids = {s.beatmap_id for s in scores if s.beatmap is None and s.beatmapset is None}
        user_ids = {s.user_id for s in scores if s.user is None}

        beatmaps = await self.fetcher.fetch_entities(client, token, EntityKind.BEATMAP, beatmap_ids)
        users = await self.fetcher.fetch_entities(client, token, EntityKind.USER, user_ids)
        beatmaps_by_id = {b["id"]: b for b in beatmaps}
        users_by_id = {u["id"]: u for u in users}

        for score in scores:
            if score.beatmap is None and score.beatmap_id is not None:
                beatmap = beatmaps_by_id.get(score.beatmap_id) or self.fetcher.cached(
                    EntityKind.BEATMAP, score.beatmap_id
                )
                if beatmap:
                    score.beatmap = beatmap
                    if score.beatmapset is None and beatmap.get("beatmapset"):
                        score.beatmapset = beatmap["beatmapset"]

            if score.user is None and score.user_id is not None:
                user = users_by_id.get(score.user_id) or self.fetcher.cached(EntityKind.USER, score.user_id)
                if user:
                    score.user = user

        return scores
