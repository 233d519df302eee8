"""Fire-and-forget view tracking."""

from __future__ import annotations

import asyncio
import logging

from trove.rpc.client import RpcClient, RpcError
from trove.state.lifetime import Lifetime

logger = logging.getLogger(__name__)


async def track_profile_view(client: RpcClient, profile_id: str) -> None:
    if not profile_id:
        return
    try:
        await client.rpc("track_profile_view", {"viewed_profile_id": profile_id})
    except RpcError as exc:
        logger.warning("Error tracking profile view for %s: %s", profile_id, exc)


async def track_item_view(client: RpcClient, item_id: str) -> None:
    """Record the view for analytics, then for recommendations."""
    if not item_id:
        return
    try:
        await client.rpc("track_item_view", {"viewed_item_id": item_id})
        await client.rpc("track_viewed_item", {"viewed_item_id": item_id})
    except RpcError as exc:
        logger.warning("Error tracking item view for %s: %s", item_id, exc)


def spawn_item_view(lifetime: Lifetime, client: RpcClient, item_id: str) -> asyncio.Task:
    return lifetime.spawn(track_item_view(client, item_id))


def spawn_profile_view(lifetime: Lifetime, client: RpcClient, profile_id: str) -> asyncio.Task:
    return lifetime.spawn(track_profile_view(client, profile_id))
