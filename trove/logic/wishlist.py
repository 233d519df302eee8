"""Wishlist badge count shown in the site header."""

from __future__ import annotations

import logging

from trove.rpc.client import RpcClient, RpcError
from trove.rpc.session import UserSession

logger = logging.getLogger(__name__)

BADGE_CAP = 9


class WishlistCount:
    def __init__(self, client: RpcClient, session: UserSession) -> None:
        self.client = client
        self.session = session
        self.count = 0

    @property
    def visible(self) -> bool:
        return self.session.is_authenticated

    @property
    def badge(self) -> str:
        if self.count <= 0:
            return ""
        if self.count > BADGE_CAP:
            return f"{BADGE_CAP}+"
        return str(self.count)

    async def refresh(self) -> int:
        """Re-read the count. A failed read keeps the last known value."""
        if not self.visible:
            self.count = 0
            return self.count
        filters = {"user_id": f"eq.{self.session.user_id}"} if self.session.user_id else {}
        try:
            self.count = await self.client.count("wish_list_items", filters=filters)
        except RpcError as exc:
            logger.error("Error fetching wishlist count: %s", exc)
        return self.count
