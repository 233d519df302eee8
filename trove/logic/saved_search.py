"""Saved searches: creation and the browse URL a search re-runs."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

from trove.rpc.client import RpcClient
from trove.rpc.models import SavedSearch

ALERT_FREQUENCIES = ("daily", "weekly", "instant")
URL_FILTERS = ("category", "minPrice", "maxPrice", "condition")

# Characters encodeURIComponent leaves alone.
_SAFE = "-_.!~*'()"


def search_url(search: SavedSearch, base: str = "/browse") -> str:
    url = f"{base}?query={quote(search.query, safe=_SAFE)}"
    for key in URL_FILTERS:
        value = search.filters.get(key)
        if value:
            url += f"&{key}={quote(str(value), safe=_SAFE)}"
    return url


async def save_search(
    client: RpcClient,
    *,
    name: str,
    query: str,
    filters: Mapping[str, Any] | None = None,
    notify_email: bool = True,
    notify_push: bool = True,
) -> SavedSearch:
    rows = await client.insert(
        "saved_searches",
        {
            "name": name,
            "query": query,
            "filters": dict(filters or {}),
            "notify_email": notify_email,
            "notify_push": notify_push,
        },
    )
    if not rows:
        raise ValueError("Backend did not return the saved search")
    return SavedSearch.from_row(rows[0])
