"""Batched beatmap/user lookups with a shared read-through cache."""

import time
from collections import OrderedDict
from collections.abc import Callable, Iterable

import httpx
from rich.markup import escape

from osu_score_feed import console
from osu_score_feed.api import fetch_entity_batch
from osu_score_feed.errors import MalformedResponse
from osu_score_feed.models import EntityKind

BATCH_SIZE = 50


class EntityCache:
    """Bounded LRU keyed by entity id, with optional expiry.

    Inserting an id that is already cached replaces the entry, so concurrent
    writers racing on the same id are harmless.
    """

    def __init__(
        self,
        max_size: int = 10_000,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl = ttl
        self.clock = clock
        self._entries: OrderedDict[int, tuple[float, dict]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_id: int) -> bool:
        return self.get(entity_id) is not None

    def get(self, entity_id: int) -> dict | None:
        item = self._entries.get(entity_id)
        if item is None:
            return None
        stored_at, entity = item
        if self.ttl is not None and self.clock() - stored_at >= self.ttl:
            del self._entries[entity_id]
            return None
        self._entries.move_to_end(entity_id)
        return entity

    def put(self, entity_id: int, entity: dict) -> None:
        self._entries[entity_id] = (self.clock(), entity)
        self._entries.move_to_end(entity_id)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)


def chunked(ids: list[int], size: int) -> list[list[int]]:
    return [ids[i : i + size] for i in range(0, len(ids), size)]


class BatchFetcher:
    """Fetches entities by id in sequential chunks of at most ``batch_size``.

    A failing chunk is reported and skipped; the other chunks still contribute
    to the result.
    """

    def __init__(
        self,
        caches: dict[EntityKind, EntityCache] | None = None,
        batch_size: int = BATCH_SIZE,
    ):
        self.caches = caches if caches is not None else {kind: EntityCache() for kind in EntityKind}
        self.batch_size = batch_size

    def cached(self, kind: EntityKind, entity_id: int) -> dict | None:
        cache = self.caches.get(kind)
        return cache.get(entity_id) if cache is not None else None

    async def fetch_entities(
        self,
        client: httpx.AsyncClient,
        token: str,
        kind: EntityKind,
        ids: Iterable[int],
    ) -> list[dict]:
        """Fetch the entities for ``ids`` not already cached.

        Only entities fetched by this call are returned; callers look up
        cached ones with ``cached()``.
        """
        cache = self.caches.get(kind)
        wanted = sorted({i for i in ids if i is not None})
        if cache is not None:
            wanted = [i for i in wanted if i not in cache]
        if not wanted:
            return []

        results: list[dict] = []
        for chunk in chunked(wanted, self.batch_size):
            try:
                entities = await fetch_entity_batch(client, token, kind, chunk)
            except (httpx.HTTPError, MalformedResponse) as e:
                console.print(f"[red]Error fetching {kind.value}s ({len(chunk)} ids): {escape(str(e))}[/red]")
                continue

            for entity in entities:
                if not isinstance(entity, dict) or entity.get("id") is None:
                    continue
                if cache is not None:
                    cache.put(entity["id"], entity)
                results.append(entity)

        return results
