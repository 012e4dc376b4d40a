"""osu! API v2 calls used by the feed and the search engine."""

import httpx

from osu_score_feed.errors import CredentialError, MalformedResponse, UserNotFound
from osu_score_feed.models import EntityKind, ScorePage, ScoreType

API_BASE = "https://osu.ppy.sh/api/v2"
TOKEN_URL = "https://osu.ppy.sh/oauth/token"


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _json(resp: httpx.Response):
    """Decode a response body, treating non-JSON (e.g. an HTML error page) as malformed."""
    try:
        return resp.json()
    except ValueError as e:
        raise MalformedResponse(f"Non-JSON response from {resp.request.url.path}") from e


async def request_token(client: httpx.AsyncClient, client_id: str, client_secret: str) -> tuple[str, float]:
    """Exchange client credentials for a bearer token. Returns ``(token, ttl_seconds)``."""
    try:
        resp = await client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
                "scope": "public",
            },
        )
        resp.raise_for_status()
        data = _json(resp)
        return data["access_token"], float(data.get("expires_in", 86400))
    except (httpx.HTTPError, MalformedResponse, KeyError, TypeError, ValueError) as e:
        raise CredentialError("Authentication failed. Check your Client ID and Client Secret.") from e


async def fetch_latest_scores(
    client: httpx.AsyncClient,
    token: str,
    ruleset: str = "osu",
    limit: int = 50,
    cursor: str | None = None,
) -> ScorePage:
    """Fetch one page of the global score feed, newest first."""
    params: dict = {"ruleset": ruleset, "limit": limit}
    if cursor:
        params["cursor_string"] = cursor

    resp = await client.get(f"{API_BASE}/scores", params=params, headers=_auth(token))
    resp.raise_for_status()
    return parse_score_page(_json(resp))


def parse_score_page(data) -> ScorePage:
    """Accept either ``{"scores": [...], "cursor_string": ...}`` or a bare list."""
    if isinstance(data, list):
        return ScorePage(scores=data)
    if isinstance(data, dict) and isinstance(data.get("scores"), list):
        return ScorePage(scores=data["scores"], cursor=data.get("cursor_string") or None)
    raise MalformedResponse(f"Unexpected score page shape: {type(data).__name__}")


async def lookup_user_id(client: httpx.AsyncClient, token: str, username: str, ruleset: str = "osu") -> int:
    """Resolve a username to its id. Numeric input is taken to already be an id."""
    username = username.strip()
    if username.isdigit():
        return int(username)

    try:
        resp = await client.get(f"{API_BASE}/users/@{username}/{ruleset}", headers=_auth(token))
        resp.raise_for_status()
        return int(_json(resp)["id"])
    except (httpx.HTTPError, MalformedResponse, KeyError, TypeError, ValueError) as e:
        raise UserNotFound(f"User not found: {username}") from e


async def fetch_user_scores(
    client: httpx.AsyncClient,
    token: str,
    user_id: int,
    score_type: ScoreType = ScoreType.BEST,
    ruleset: str = "osu",
    limit: int = 100,
    include_fails: bool = False,
) -> list[dict]:
    """Fetch a user's best or recent scores in one call."""
    params: dict = {"mode": ruleset, "limit": limit}
    if score_type == ScoreType.RECENT and include_fails:
        params["include_fails"] = 1

    resp = await client.get(
        f"{API_BASE}/users/{user_id}/scores/{score_type.value}",
        params=params,
        headers=_auth(token),
    )
    resp.raise_for_status()
    data = _json(resp)
    if not isinstance(data, list):
        raise MalformedResponse(f"Unexpected user scores shape: {type(data).__name__}")
    return data


async def fetch_entity_batch(
    client: httpx.AsyncClient,
    token: str,
    kind: EntityKind,
    ids: list[int],
) -> list[dict]:
    """Look up at most one batch of beatmaps or users by id."""
    key = f"{kind.value}s"
    params = [("ids[]", str(i)) for i in ids]

    resp = await client.get(f"{API_BASE}/{key}", params=params, headers=_auth(token))
    resp.raise_for_status()
    data = _json(resp)
    entities = data.get(key) if isinstance(data, dict) else None
    if not isinstance(entities, list):
        raise MalformedResponse(f"Unexpected {key} lookup shape")
    return entities
