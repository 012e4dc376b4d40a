"""Request-scoped score search over a user's scores or the global feed."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from rich.markup import escape

from osu_score_feed import console
from osu_score_feed.api import fetch_latest_scores, fetch_user_scores, lookup_user_id, request_token
from osu_score_feed.enrich import ScoreEnricher
from osu_score_feed.errors import CredentialError, MalformedResponse, SearchError, UserNotFound
from osu_score_feed.models import Score, ScoreType
from osu_score_feed.scores import normalize_and_filter, newest_first

DEFAULT_LIMIT = 10
MAX_RECORDS = 10_000
TIME_BUDGET = 25.0
PAGE_SIZE = 50
USER_SCORES_LIMIT = 100


@dataclass
class SearchRequest:
    client_id: str
    client_secret: str
    username: str | None = None
    min_pp: float | None = None
    max_pp: float | None = None
    mods: list[str] = field(default_factory=list)
    limit: int = DEFAULT_LIMIT
    type: ScoreType = ScoreType.BEST
    include_fails: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "SearchRequest":
        """Build a request from a loosely typed JSON body.

        Raises:
            SearchError: 400 when credentials are missing or a number is invalid.
        """
        client_id = str(payload.get("client_id") or "").strip()
        client_secret = str(payload.get("client_secret") or "").strip()
        if not client_id or not client_secret:
            raise SearchError(400, "Missing Client ID or Client Secret")

        mods = payload.get("mods") or []
        if isinstance(mods, str):
            mods = [m for m in mods.replace(",", " ").split() if m]

        try:
            return cls(
                client_id=client_id,
                client_secret=client_secret,
                username=(str(payload["username"]).strip() or None) if payload.get("username") else None,
                min_pp=_optional_float(payload.get("min_pp")),
                max_pp=_optional_float(payload.get("max_pp")),
                mods=[str(m).upper() for m in mods],
                limit=int(payload.get("limit") or DEFAULT_LIMIT),
                type=ScoreType.RECENT if payload.get("type") == ScoreType.RECENT.value else ScoreType.BEST,
                include_fails=bool(payload.get("include_fails")),
            )
        except (TypeError, ValueError) as e:
            raise SearchError(400, f"Invalid search parameters: {e}") from e


def _optional_float(value) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


class SearchEngine:
    """Runs searches with caller-supplied credentials.

    Only the entity caches behind ``enricher`` are shared with the background
    feed; each search exchanges its own token.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        enricher: ScoreEnricher,
        ruleset: str = "osu",
        max_records: int = MAX_RECORDS,
        time_budget: float = TIME_BUDGET,
        user_scores_limit: int = USER_SCORES_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.enricher = enricher
        self.ruleset = ruleset
        self.max_records = max_records
        self.time_budget = time_budget
        self.user_scores_limit = user_scores_limit
        self.clock = clock

    async def search(self, request: SearchRequest, cancel_event: asyncio.Event | None = None) -> list[Score]:
        """Return up to ``request.limit`` matching scores, newest first.

        Raises:
            SearchError: with status 400, 401, 404 or 500.
        """
        if not request.client_id or not request.client_secret:
            raise SearchError(400, "Missing Client ID or Client Secret")

        try:
            token, _ = await request_token(self.client, request.client_id, request.client_secret)
        except CredentialError as e:
            raise SearchError(401, str(e)) from e

        try:
            if request.username:
                scores = await self._user_scores(token, request)
            else:
                scores = await self._global_scores(token, request, cancel_event)
            final = newest_first(scores)[: max(request.limit, 0)]
            await self.enricher.enrich(self.client, token, final)
        except UserNotFound as e:
            raise SearchError(404, "User not found") from e
        except (httpx.HTTPError, MalformedResponse) as e:
            raise SearchError(500, str(e)) from e
        except Exception as e:
            console.print(f"[red]Search failed: {escape(repr(e))}[/red]")
            raise SearchError(500, "Internal error while searching") from e
        return final

    async def _user_scores(self, token: str, request: SearchRequest) -> list[Score]:
        user_id = await lookup_user_id(self.client, token, request.username, ruleset=self.ruleset)
        raw = await fetch_user_scores(
            self.client,
            token,
            user_id,
            score_type=request.type,
            ruleset=self.ruleset,
            limit=self.user_scores_limit,
            include_fails=request.include_fails,
        )
        return normalize_and_filter(raw, request.min_pp, request.max_pp, request.mods)

    async def _global_scores(
        self,
        token: str,
        request: SearchRequest,
        cancel_event: asyncio.Event | None,
    ) -> list[Score]:
        """Page through the global feed, filtering each page as it arrives.

        Stops at ``request.limit`` matches, ``max_records`` fetched records, the
        time budget, cancellation, or the end of the feed. Page errors end the
        walk with whatever has matched so far.
        """
        matches: list[Score] = []
        fetched = 0
        cursor: str | None = None
        started = self.clock()

        while len(matches) < request.limit and fetched < self.max_records:
            elapsed = self.clock() - started
            if elapsed > self.time_budget:
                console.print("[yellow]Search timed out, returning partial results.[/yellow]")
                break
            if cancel_event is not None and cancel_event.is_set():
                console.print("[yellow]Search cancelled, returning partial results.[/yellow]")
                break

            try:
                page = await asyncio.wait_for(
                    fetch_latest_scores(self.client, token, ruleset=self.ruleset, limit=PAGE_SIZE, cursor=cursor),
                    timeout=self.time_budget - elapsed,
                )
            except asyncio.TimeoutError:
                console.print("[yellow]Search timed out, returning partial results.[/yellow]")
                break
            except (httpx.HTTPError, MalformedResponse) as e:
                console.print(f"[red]Error fetching global scores page: {escape(str(e))}[/red]")
                break

            if not page.scores:
                break

            fetched += len(page.scores)
            matches.extend(normalize_and_filter(page.scores, request.min_pp, request.max_pp, request.mods))

            if not page.has_more:
                break
            cursor = page.cursor

        console.print(f"[dim]Search scanned {fetched} scores, {len(matches)} matched.[/dim]")
        return matches
