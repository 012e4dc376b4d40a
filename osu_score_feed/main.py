"""CLI entry point for the osu! score feed."""

import argparse
import asyncio
import json

import httpx
from dotenv import load_dotenv
from rich.markup import escape
from rich.table import Table

from osu_score_feed import console
from osu_score_feed.config import Settings
from osu_score_feed.context import FeedContext
from osu_score_feed.errors import SearchError
from osu_score_feed.hub import EventType, FeedEvent
from osu_score_feed.models import Score
from osu_score_feed.search import SearchRequest


def _describe(score: Score) -> str:
    user = (score.user or {}).get("username", score.user_id)
    beatmapset = score.beatmapset or (score.beatmap or {}).get("beatmapset") or {}
    title = beatmapset.get("title") or f"beatmap {score.beatmap_id}"
    version = (score.beatmap or {}).get("version")
    if version:
        title = f"{title} [{version}]"
    mods = f" +{''.join(score.mods)}" if score.mods else ""
    return f"{user} · {title}{mods} · {score.pp:.2f}pp"


def print_event(event: FeedEvent) -> None:
    if event.type == EventType.NEW_SUSPICIOUS:
        console.print(f"[bold yellow]SUSPICIOUS[/bold yellow] {escape(_describe(event.scores[0]))}")
        return
    for score in event.scores:
        console.print(f"[cyan]{score.id}[/cyan] {escape(_describe(score))}")


def print_scores(scores: list[Score]) -> None:
    table = Table(title=f"{len(scores)} scores")
    table.add_column("Date")
    table.add_column("Player")
    table.add_column("Beatmap")
    table.add_column("Mods")
    table.add_column("PP", justify="right")
    for score in scores:
        beatmap = str((score.beatmapset or {}).get("title", score.beatmap_id))
        version = (score.beatmap or {}).get("version")
        if version:
            beatmap = f"{beatmap} [{version}]"
        table.add_row(
            (score.created_at or "")[:19],
            escape(str((score.user or {}).get("username", score.user_id))),
            escape(beatmap),
            escape("".join(score.mods)) or "NM",
            f"{score.pp:.2f}",
        )
    console.print(table)


async def watch(settings: Settings) -> None:
    async with httpx.AsyncClient(timeout=30) as client:
        ctx = FeedContext.create(client, settings)

        async def _consume():
            async with ctx.hub.subscribe() as sub:
                async for event in sub:
                    print_event(event)

        consumer = asyncio.create_task(_consume())
        try:
            await ctx.start()
        finally:
            consumer.cancel()


async def search(settings: Settings, args: argparse.Namespace) -> int:
    payload = {
        "client_id": settings.client_id,
        "client_secret": settings.client_secret,
        "username": args.username,
        "min_pp": args.min_pp,
        "max_pp": args.max_pp,
        "mods": args.mods,
        "limit": args.limit,
        "type": args.type,
        "include_fails": args.include_fails,
    }
    async with httpx.AsyncClient(timeout=30) as client:
        ctx = FeedContext.create(client, settings)
        try:
            request = SearchRequest.from_payload(payload)
            scores = await ctx.search.search(request)
        except SearchError as e:
            console.print(f"[red]Search failed ({e.status}): {e.message}[/red]")
            return 1

    if args.json:
        console.print_json(json.dumps([s.to_dict() for s in scores]))
    else:
        print_scores(scores)
    return 0


async def main() -> int:
    load_dotenv()
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Live osu! score feed and score search")
    parser.add_argument("--client-id", type=str, default=None, help="osu! OAuth client id (default: $OSU_CLIENT_ID)")
    parser.add_argument(
        "--client-secret", type=str, default=None, help="osu! OAuth client secret (default: $OSU_CLIENT_SECRET)"
    )
    parser.add_argument("--ruleset", type=str, default=None, help="Ruleset to follow (default: osu)")
    commands = parser.add_subparsers(dest="command", required=True)

    watch_cmd = commands.add_parser("watch", help="Follow new scores and flag suspicious ones")
    watch_cmd.add_argument("--interval", type=float, default=None, help="Seconds between polls (default: 5)")
    watch_cmd.add_argument("--backfill-pages", type=int, default=None, help="History pages read on startup (default: 5)")
    watch_cmd.add_argument(
        "--no-suspicious", action="store_true", help="Do not include suspicious scores in client snapshots"
    )

    search_cmd = commands.add_parser("search", help="Search a user's scores or the global feed")
    search_cmd.add_argument("--username", type=str, default=None, help="Username or user id (default: global feed)")
    search_cmd.add_argument("--min-pp", type=float, default=None, help="Minimum pp (inclusive)")
    search_cmd.add_argument("--max-pp", type=float, default=None, help="Maximum pp (inclusive)")
    search_cmd.add_argument("--mods", nargs="*", default=[], help="Mods that must all be present, e.g. HD DT")
    search_cmd.add_argument("--limit", type=int, default=settings.search_limit, help="Number of results (default: 10)")
    search_cmd.add_argument("--type", choices=["best", "recent"], default="best", help="User score list (default: best)")
    search_cmd.add_argument("--include-fails", action="store_true", help="Include failed plays in recent scores")
    search_cmd.add_argument("--json", action="store_true", help="Print results as JSON")

    args = parser.parse_args()

    if args.client_id:
        settings.client_id = args.client_id
    if args.client_secret:
        settings.client_secret = args.client_secret
    if args.ruleset:
        settings.ruleset = args.ruleset

    if not settings.client_id or not settings.client_secret:
        console.print("[red]OSU_CLIENT_ID and OSU_CLIENT_SECRET must be set (or pass --client-id/--client-secret).[/red]")
        return 2

    if args.command == "search":
        return await search(settings, args)

    if args.interval is not None:
        settings.poll_interval = args.interval
    if args.backfill_pages is not None:
        settings.backfill_pages = args.backfill_pages
    if args.no_suspicious:
        settings.track_suspicious = False
    await watch(settings)
    return 0


def cli():
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


if __name__ == "__main__":
    cli()
