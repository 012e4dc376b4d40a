"""Background ingestion: startup backfill and the polling loop."""

import asyncio
import time

import httpx
from rich.markup import escape

from osu_score_feed import console, fetch_progress
from osu_score_feed.api import fetch_latest_scores
from osu_score_feed.auth import CredentialManager
from osu_score_feed.classifier import SuspicionClassifier
from osu_score_feed.enrich import ScoreEnricher
from osu_score_feed.errors import MalformedResponse
from osu_score_feed.hub import Broadcaster
from osu_score_feed.models import FeedState, Score
from osu_score_feed.scores import normalize_and_filter, score_id

POLL_INTERVAL = 5.0
PAGE_SIZE = 50
BACKFILL_PAGES = 5
BACKFILL_DELAY = 1.5


def _score_id(raw) -> int:
    return score_id(raw) or 0


class ScoreFeed:
    """Polls the global score feed and republishes new scores.

    Cycles never overlap: ``run`` awaits each cycle before sleeping, and
    ``poll_once`` skips if a cycle is already in progress.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialManager,
        enricher: ScoreEnricher,
        classifier: SuspicionClassifier,
        hub: Broadcaster,
        state: FeedState,
        ruleset: str = "osu",
        page_size: int = PAGE_SIZE,
        interval: float = POLL_INTERVAL,
    ):
        self.client = client
        self.credentials = credentials
        self.enricher = enricher
        self.classifier = classifier
        self.hub = hub
        self.state = state
        self.ruleset = ruleset
        self.page_size = page_size
        self.interval = interval
        self._cycle_lock = asyncio.Lock()
        self._stopping = asyncio.Event()

    async def _process(self, token: str, raw_scores: list[dict]) -> list[Score]:
        """Normalize, enrich and classify a batch, returned in id order."""
        scores = normalize_and_filter(raw_scores)
        await self.enricher.enrich(self.client, token, scores)
        for score in scores:
            self.classifier.classify(score)
        scores.sort(key=lambda s: s.id)
        return scores

    async def poll_once(self) -> list[Score]:
        """Run a single ingestion cycle and return the published batch."""
        if self._cycle_lock.locked():
            console.print("[dim]Previous polling cycle still running, skipping.[/dim]")
            return []
        async with self._cycle_lock:
            try:
                return await self._cycle()
            except Exception as e:
                console.print(f"[red]Polling cycle failed: {escape(repr(e))}[/red]")
                return []

    async def _cycle(self) -> list[Score]:
        token = await self.credentials.get_token()
        if not token:
            console.print("[yellow]No access token, skipping polling cycle.[/yellow]")
            return []

        try:
            page = await fetch_latest_scores(self.client, token, ruleset=self.ruleset, limit=self.page_size)
        except MalformedResponse:
            return []

        last_id = self.state.cursor.last_id
        fresh = [raw for raw in page.scores if _score_id(raw) > last_id]
        if not fresh:
            return []

        # Claim the ids before enriching so a failure below never replays them
        self.state.cursor.advance(max(_score_id(raw) for raw in fresh))

        scores = await self._process(token, fresh)
        if not scores:
            return []

        self.state.add_recent(scores)
        self.hub.publish_scores(scores)
        console.print(f"[dim]{len(scores)} new scores (cursor {self.state.cursor.last_id}).[/dim]")
        return scores

    async def backfill(self, pages: int = BACKFILL_PAGES, delay: float = BACKFILL_DELAY) -> int:
        """Walk back through recent history to seed the cursor and suspicious list.

        Scores seen here are not added to the recent list or broadcast. Stops
        quietly on an empty page, a missing continuation cursor or a fetch
        error. Returns the number of scores processed.
        """
        token = await self.credentials.get_token()
        if not token:
            console.print("[yellow]No access token, skipping backfill.[/yellow]")
            return 0

        processed = 0
        flagged_before = len(self.state.suspicious)

        with fetch_progress(
            "Backfilling score history...",
            page="page {task.fields[page]}",
            count="· {task.fields[count]} scores",
        ) as progress:
            task = progress.add_task("backfill", total=None, page=0, count=0)

            for page_no in range(1, pages + 1):
                progress.update(task, page=page_no, count=processed)
                try:
                    page = await fetch_latest_scores(
                        self.client,
                        token,
                        ruleset=self.ruleset,
                        limit=self.page_size,
                        cursor=self.state.cursor.page_token,
                    )
                except (httpx.HTTPError, MalformedResponse) as e:
                    console.print(f"[yellow]Backfill stopped at page {page_no}: {escape(str(e))}[/yellow]")
                    break

                if not page.scores:
                    break

                if page_no == 1 and self.state.cursor.last_id == 0:
                    self.state.cursor.advance(max(_score_id(raw) for raw in page.scores))

                try:
                    processed += len(await self._process(token, page.scores))
                except Exception as e:
                    console.print(f"[yellow]Backfill stopped at page {page_no}: {escape(repr(e))}[/yellow]")
                    break

                if not page.has_more:
                    break
                self.state.cursor.page_token = page.cursor
                if page_no < pages:
                    await asyncio.sleep(delay)

        flagged = len(self.state.suspicious) - flagged_before
        console.print(f"[green]Backfill: processed {processed} scores, {flagged} flagged as suspicious.[/green]")
        return processed

    async def run(self) -> None:
        """Poll every ``interval`` seconds until ``stop`` is called."""
        self._stopping.clear()
        while not self._stopping.is_set():
            started = time.monotonic()
            await self.poll_once()
            remaining = max(0.0, self.interval - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stopping.set()
