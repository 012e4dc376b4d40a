"""Builds the shared components once and hands them to every consumer."""

from dataclasses import dataclass

import httpx

from osu_score_feed.auth import CredentialManager
from osu_score_feed.classifier import SuspicionClassifier
from osu_score_feed.config import Settings
from osu_score_feed.enrich import ScoreEnricher
from osu_score_feed.feed import ScoreFeed
from osu_score_feed.fetcher import BatchFetcher, EntityCache
from osu_score_feed.hub import Broadcaster
from osu_score_feed.models import EntityKind, FeedState
from osu_score_feed.search import SearchEngine


@dataclass
class FeedContext:
    settings: Settings
    client: httpx.AsyncClient
    state: FeedState
    credentials: CredentialManager
    fetcher: BatchFetcher
    enricher: ScoreEnricher
    hub: Broadcaster
    classifier: SuspicionClassifier
    feed: ScoreFeed
    search: SearchEngine

    @classmethod
    def create(cls, client: httpx.AsyncClient, settings: Settings) -> "FeedContext":
        state = FeedState.with_capacity(settings.recent_capacity)
        credentials = CredentialManager(
            client,
            settings.client_id,
            settings.client_secret,
            margin=settings.token_margin,
        )
        fetcher = BatchFetcher(
            caches={kind: EntityCache(settings.cache_size, settings.cache_ttl) for kind in EntityKind},
            batch_size=settings.batch_size,
        )
        enricher = ScoreEnricher(fetcher)
        hub = Broadcaster(
            state,
            include_suspicious=settings.track_suspicious,
            queue_size=settings.subscriber_queue_size,
        )
        classifier = SuspicionClassifier(
            state,
            hub,
            mod=settings.suspicious_mod,
            pp_threshold=settings.suspicious_pp,
        )
        feed = ScoreFeed(
            client,
            credentials,
            enricher,
            classifier,
            hub,
            state,
            ruleset=settings.ruleset,
            page_size=settings.page_size,
            interval=settings.poll_interval,
        )
        search = SearchEngine(
            client,
            enricher,
            ruleset=settings.ruleset,
            max_records=settings.search_max_records,
            time_budget=settings.search_time_budget,
            user_scores_limit=settings.user_scores_limit,
        )
        return cls(
            settings=settings,
            client=client,
            state=state,
            credentials=credentials,
            fetcher=fetcher,
            enricher=enricher,
            hub=hub,
            classifier=classifier,
            feed=feed,
            search=search,
        )

    async def start(self) -> None:
        """Backfill, then poll until ``feed.stop()`` is called."""
        await self.feed.backfill(self.settings.backfill_pages, self.settings.backfill_delay)
        await self.feed.run()
