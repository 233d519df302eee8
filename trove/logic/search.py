"""Item search through the external index, with a database fallback.

The index lives behind backend functions; this module only decides which
path to take. Index availability is cached for ``SEARCH_STATUS_TTL`` seconds.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field

from trove.rpc.client import RpcClient, RpcError
from trove.rpc.models import SearchItem

logger = logging.getLogger(__name__)

STATUS_TTL = float(os.environ.get("SEARCH_STATUS_TTL", 60))
SORT_ORDERS = {
    "newest": "created_at.desc",
    "price-asc": "price.asc",
    "price-desc": "price.desc",
}
DATABASE_COLUMNS = (
    "id,title,price,condition,images,created_at,"
    "seller:seller_id(id,username,rating),"
    "category:category_id(id,name,slug)"
)

INDEX_MODE = "elasticsearch"
DATABASE_MODE = "database"


@dataclass(slots=True)
class SearchParams:
    query: str = ""
    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    condition: str | None = None
    sort: str = "newest"
    limit: int = 20
    offset: int = 0


@dataclass(slots=True)
class SearchResponse:
    items: list[SearchItem] = field(default_factory=list)
    total: int = 0
    took: int = 0
    search_mode: str = DATABASE_MODE


@dataclass(slots=True)
class SearchStatus:
    available: bool
    configured: bool
    url: str | None = None
    index: str | None = None
    last_sync: str | None = None
    error: str | None = None


_status: SearchStatus | None = None
_status_checked_at = 0.0


def reset_status_cache() -> None:
    global _status, _status_checked_at
    _status = None
    _status_checked_at = 0.0


async def check_search_status(client: RpcClient) -> SearchStatus:
    global _status, _status_checked_at
    if _status is not None and time.monotonic() - _status_checked_at < STATUS_TTL:
        return _status
    _status = await _fetch_status(client)
    _status_checked_at = time.monotonic()
    return _status


async def _fetch_status(client: RpcClient) -> SearchStatus:
    try:
        rows = await client.select("elasticsearch_config", columns="es_url,items_index,last_sync")
    except RpcError as exc:
        logger.error("Error checking search index status: %s", exc)
        return SearchStatus(available=False, configured=False, error=exc.message)
    if not rows:
        return SearchStatus(available=False, configured=False, error="Configuration not found")
    config = rows[0]
    url, index = config.get("es_url"), config.get("items_index")
    if not url or not index:
        return SearchStatus(available=False, configured=False, url=url, index=index, error="Incomplete configuration")
    last_sync = config.get("last_sync")
    try:
        ping = await client.rpc("check_elasticsearch_connection")
    except RpcError as exc:
        return SearchStatus(False, True, url, index, last_sync, exc.message)
    if not ping or not ping.get("available"):
        error = (ping or {}).get("error") or "Connection test failed"
        return SearchStatus(False, True, url, index, last_sync, error)
    return SearchStatus(True, True, url, index, last_sync)


async def search_items(client: RpcClient, params: SearchParams) -> SearchResponse:
    status = await check_search_status(client)
    if status.available:
        try:
            return await search_with_index(client, params)
        except RpcError as exc:
            logger.error("Index search failed, falling back to database: %s", exc)
    return await search_with_database(client, params)


async def search_with_index(client: RpcClient, params: SearchParams) -> SearchResponse:
    """Query the index directly. Raises RpcError when it is unavailable."""
    data = await client.rpc(
        "search_items_elasticsearch",
        {
            "search_query": params.query,
            "category_slug": params.category,
            "min_price": params.min_price,
            "max_price": params.max_price,
            "condition_filter": params.condition,
            "sort_by": params.sort,
            "limit_val": params.limit,
            "offset_val": params.offset,
        },
    )
    hits = data["hits"]
    return SearchResponse(
        items=[SearchItem.from_hit(hit) for hit in hits["hits"]],
        total=int(hits["total"]["value"]),
        took=int(data.get("took") or 0),
        search_mode=INDEX_MODE,
    )


def database_filters(params: SearchParams) -> dict[str, str]:
    filters = {"is_active": "eq.true"}
    query = params.query.strip()
    if query:
        filters["or"] = f"(title.ilike.*{query}*,description.ilike.*{query}*)"
    if params.category:
        filters["category.slug"] = f"eq.{params.category}"
    bounds = []
    if params.min_price is not None:
        bounds.append(f"price.gte.{params.min_price}")
    if params.max_price is not None:
        bounds.append(f"price.lte.{params.max_price}")
    if bounds:
        filters["and"] = f"({','.join(bounds)})"
    if params.condition:
        filters["condition"] = f"eq.{params.condition}"
    return filters


async def search_with_database(client: RpcClient, params: SearchParams) -> SearchResponse:
    started = time.monotonic()
    try:
        rows, total = await client.select_page(
            "items",
            filters=database_filters(params),
            order=SORT_ORDERS.get(params.sort, SORT_ORDERS["newest"]),
            columns=DATABASE_COLUMNS,
            limit=params.limit,
            offset=params.offset,
        )
    except RpcError as exc:
        logger.error("Error in database search: %s", exc)
        rows, total = [], 0
    return SearchResponse(
        items=[SearchItem.from_row(row) for row in rows],
        total=total,
        took=int((time.monotonic() - started) * 1000),
        search_mode=DATABASE_MODE,
    )


async def sync_search_index(client: RpcClient) -> str:
    """Admin only: push items into the index now."""
    result = await client.rpc("admin_sync_elasticsearch")
    reset_status_cache()
    return str(result or "")


async def recheck_search_status(client: RpcClient) -> SearchStatus:
    """Drop the cached status and ping the index again."""
    reset_status_cache()
    return await check_search_status(client)
