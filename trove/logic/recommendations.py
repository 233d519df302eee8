"""Recommendation fetching and the scrolling rails that display them."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from trove.logic.carousel import INITIAL_MEASURE_DELAY, CarouselBounds, Direction
from trove.rpc.client import RpcClient, RpcError
from trove.rpc.models import RecommendationItem
from trove.rpc.session import UserSession
from trove.state.lifetime import Lifetime

logger = logging.getLogger(__name__)

Measure = Callable[[], "tuple[float, float]"]

DEFAULT_TITLES = {
    "personalized": "Recommended for You",
    "popular": "Popular Items",
    "recently_viewed": "Recently Viewed",
    "similar": "Similar Items",
}


def _items(rows) -> list[RecommendationItem]:
    return [RecommendationItem.from_row(row) for row in rows or []]


async def get_popular_recommendations(client: RpcClient, limit: int = 10) -> list[RecommendationItem]:
    try:
        rows = await client.rpc("get_recommended_items", {"recommendation_type": "popular", "limit_val": limit})
    except RpcError as exc:
        logger.error("Error fetching popular recommendations: %s", exc)
        return []
    return _items(rows)


async def get_personalized_recommendations(client: RpcClient, limit: int = 10) -> list[RecommendationItem]:
    try:
        rows = await client.rpc(
            "get_recommended_items", {"recommendation_type": "personalized", "limit_val": limit}
        )
    except RpcError as exc:
        logger.error("Error fetching personalized recommendations: %s", exc)
        return await get_popular_recommendations(client, limit)
    if not rows:
        return await get_popular_recommendations(client, limit)
    return _items(rows)


async def get_recently_viewed_items(client: RpcClient, limit: int = 8) -> list[RecommendationItem]:
    try:
        rows = await client.rpc("get_recently_viewed_items", {"limit_val": limit})
    except RpcError as exc:
        logger.error("Error fetching recently viewed items: %s", exc)
        return []
    return _items(rows)


async def get_similar_items(client: RpcClient, item_id: str, limit: int = 8) -> list[RecommendationItem]:
    try:
        rows = await client.rpc("get_similar_items", {"item_id": item_id, "limit_val": limit})
    except RpcError as exc:
        logger.error("Error fetching similar items for %s: %s", item_id, exc)
        return []
    return _items(rows)


async def update_recommendations(client: RpcClient) -> str:
    """Admin only: rebuild recommendation tables now."""
    result = await client.rpc("admin_update_recommendations")
    return str(result or "")


class RecommendationRail:
    def __init__(
        self,
        client: RpcClient,
        session: UserSession,
        kind: str = "personalized",
        *,
        limit: int = 10,
        title: str | None = None,
        item_id: str | None = None,
        lifetime: Lifetime | None = None,
    ) -> None:
        if kind not in DEFAULT_TITLES:
            raise ValueError(f"Unknown rail kind: {kind}")
        self.client = client
        self.session = session
        self.kind = kind
        self.limit = limit
        self.title = title or DEFAULT_TITLES[kind]
        self.item_id = item_id
        self.lifetime = lifetime or Lifetime()
        self.items: list[RecommendationItem] = []
        self.loading = True
        self.bounds = CarouselBounds()

    @property
    def visible(self) -> bool:
        return self.loading or bool(self.items)

    async def load(self) -> None:
        self.loading = True
        try:
            self.items = await self.lifetime.guard(self._fetch())
        finally:
            self.loading = False

    async def _fetch(self) -> list[RecommendationItem]:
        if self.kind == "personalized" and self.session.is_authenticated:
            return await get_personalized_recommendations(self.client, self.limit)
        if self.kind == "recently_viewed":
            if not self.session.is_authenticated:
                return []
            return await get_recently_viewed_items(self.client, self.limit)
        if self.kind == "similar":
            if not self.item_id:
                return []
            return await get_similar_items(self.client, self.item_id, self.limit)
        return await get_popular_recommendations(self.client, self.limit)

    async def mount(self, measure: Measure) -> None:
        await self.load()
        await self.lifetime.guard(asyncio.sleep(INITIAL_MEASURE_DELAY))
        self.bounds.measure(*measure())

    def on_resize(self, measure: Measure) -> None:
        self.bounds.measure(*measure())

    def scroll(self, direction: Direction | str) -> float:
        return self.bounds.scroll(direction)

    def on_scroll(self, offset: float) -> None:
        self.bounds.on_scroll(offset)

    def unmount(self) -> None:
        self.lifetime.close()
