"""Client-credentials token management."""

import asyncio
import time
from collections.abc import Callable

import httpx
from rich.markup import escape

from osu_score_feed import console
from osu_score_feed.api import request_token
from osu_score_feed.errors import CredentialError
from osu_score_feed.models import Credential

TOKEN_MARGIN = 60.0


class CredentialManager:
    """Caches a bearer token and refreshes it shortly before it expires.

    Concurrent callers share one in-flight exchange instead of issuing their own.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        margin: float = TOKEN_MARGIN,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.client_id = client_id
        self.client_secret = client_secret
        self.margin = margin
        self.clock = clock
        self.credential: Credential | None = None
        self._lock = asyncio.Lock()

    def _cached(self) -> str | None:
        if self.credential and self.credential.is_valid(self.clock()):
            return self.credential.token
        return None

    async def get_token(self) -> str | None:
        """Return a valid token, or None when the exchange fails."""
        token = self._cached()
        if token:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._cached()
            if token:
                return token

            try:
                token, ttl = await request_token(self.client, self.client_id, self.client_secret)
            except CredentialError as e:
                cause = e.__cause__ or e
                console.print(f"[red]Error getting access token: {escape(str(cause))}[/red]")
                return None

            self.credential = Credential(token=token, expires_at=self.clock() + ttl - self.margin)
            console.print(f"[dim]Granted new access token, expires in {ttl:.0f}s.[/dim]")
            return token

    def invalidate(self) -> None:
        self.credential = None
