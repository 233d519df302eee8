"""Offset-paginated review and bid lists with "load more"."""

from __future__ import annotations

import logging
import os
from typing import ClassVar, Generic, TypeVar

from trove.rpc.client import RpcClient, RpcError
from trove.rpc.models import BidRecord, ReviewRecord
from trove.state.lifetime import Lifetime

logger = logging.getLogger(__name__)

REVIEWS_PER_PAGE = int(os.environ.get("REVIEWS_PER_PAGE", 5))
BIDS_PER_PAGE = int(os.environ.get("BIDS_PER_PAGE", 5))

R = TypeVar("R")


class PaginatedList(Generic[R]):
    """Records for one subject, grown a page at a time.

    ``has_more`` is inferred: a full page means another may exist. Every
    reset bumps a generation token and responses from an older generation
    are dropped, so a late page for a previous subject never lands here.
    """

    fetch_function: ClassVar[str]
    subject_param: ClassVar[str]
    record_type: ClassVar[type]
    default_page_size: ClassVar[int] = REVIEWS_PER_PAGE
    fetch_error: ClassVar[str] = "Failed to fetch records."

    def __init__(self, client: RpcClient, *, page_size: int | None = None, lifetime: Lifetime | None = None) -> None:
        self.client = client
        self.page_size = page_size or self.default_page_size
        self.lifetime = lifetime or Lifetime()
        self.subject_id: str | None = None
        self.refresh_key: int | None = None
        self.records: list[R] = []
        self.page = 1
        self.has_more = True
        self.loading = False
        self.error: str | None = None
        self._generation = 0

    async def reset(self, subject_id: str | None, refresh_key: int | None = None) -> None:
        self._generation += 1
        self.subject_id = subject_id
        self.refresh_key = refresh_key
        self.records = []
        self.page = 1
        self.has_more = True
        self.error = None
        if not subject_id:
            self.has_more = False
            self.loading = False
            return
        await self._fetch(1, append=False)

    async def refresh(self) -> None:
        """Start over for the same subject, as a changed refresh key does."""
        await self.reset(self.subject_id, (self.refresh_key or 0) + 1)

    async def load_more(self) -> bool:
        if not self.has_more or self.loading or not self.subject_id:
            return False
        return await self._fetch(self.page + 1, append=True)

    async def fetch_page(self, subject_id: str, page: int) -> list[R]:
        rows = await self.client.rpc(
            self.fetch_function,
            {self.subject_param: subject_id, "p_page": page, "p_limit": self.page_size},
        )
        return [self.record_type.from_row(row) for row in rows or []]

    async def _fetch(self, page: int, *, append: bool) -> bool:
        generation = self._generation
        subject_id = self.subject_id
        self.loading = True
        self.error = None
        try:
            batch = await self.lifetime.guard(self.fetch_page(subject_id, page))
        except RpcError as exc:
            if generation != self._generation:
                return False
            logger.error("Error fetching %s page %s for %s: %s", self.fetch_function, page, subject_id, exc)
            self.error = exc.message or self.fetch_error
            if not append:
                self.records = []
            self.has_more = False
            return False
        finally:
            if generation == self._generation:
                self.loading = False
        if generation != self._generation:
            logger.debug("Discarding stale page %s for %s", page, subject_id)
            return False
        self.records = self.records + batch if append else batch
        self.page = page
        self.has_more = len(batch) == self.page_size
        return True

    def unmount(self) -> None:
        self.lifetime.close()


class ItemReviewList(PaginatedList[ReviewRecord]):
    fetch_function = "get_item_reviews"
    subject_param = "p_item_id"
    record_type = ReviewRecord
    fetch_error = "Failed to fetch reviews."


class SellerReviewList(PaginatedList[ReviewRecord]):
    fetch_function = "get_seller_reviews"
    subject_param = "p_seller_user_id"
    record_type = ReviewRecord
    fetch_error = "Failed to fetch seller reviews."


class BidList(PaginatedList[BidRecord]):
    fetch_function = "get_item_bids"
    subject_param = "p_item_id"
    record_type = BidRecord
    default_page_size = BIDS_PER_PAGE
    fetch_error = "Failed to fetch bids."


LISTS: dict[str, type[PaginatedList]] = {
    "item-reviews": ItemReviewList,
    "seller-reviews": SellerReviewList,
    "bids": BidList,
}
