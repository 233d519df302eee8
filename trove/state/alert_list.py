"""Pages listing the signed-in user's alerts of one kind."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from trove.logic.saved_search import ALERT_FREQUENCIES, search_url
from trove.rpc.client import RpcClient, RpcError
from trove.rpc.models import PriceAlertRecord, SavedSearch, StockAlertRecord, WishlistItem
from trove.rpc.session import AUTH_PATH, UserSession
from trove.state.cache import StatusCache, default_cache
from trove.state.lifetime import Lifetime

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ListView(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    POPULATED = "populated"


class AlertListPage(Generic[R]):
    kind: ClassVar[str]
    list_function: ClassVar[str]
    list_params: ClassVar[dict[str, Any]] = {}
    record_type: ClassVar[type]
    load_error: ClassVar[str] = "Failed to load alerts. Please try again later."
    remove_error: ClassVar[str] = "Failed to remove alert. Please try again."

    def __init__(
        self,
        client: RpcClient,
        session: UserSession,
        *,
        cache: StatusCache | None = None,
        lifetime: Lifetime | None = None,
    ) -> None:
        self.client = client
        self.session = session
        self.cache = cache if cache is not None else default_cache
        self.lifetime = lifetime or Lifetime()
        self.records: list[R] = []
        self.loading = True
        self.error = ""
        self.redirect: str | None = None
        self._token = 0

    @property
    def view(self) -> ListView:
        if self.loading:
            return ListView.LOADING
        if self.error and not self.records:
            return ListView.ERROR
        if not self.records:
            return ListView.EMPTY
        return ListView.POPULATED

    async def load(self) -> None:
        # Any response still in flight belongs to the previous identity.
        self._token += 1
        token = self._token
        if not self.session.is_authenticated:
            self.records = []
            self.redirect = AUTH_PATH
            self.loading = False
            return
        self.loading = True
        self.error = ""
        try:
            rows = await self.lifetime.guard(self.client.rpc(self.list_function, self.list_params))
        except RpcError as exc:
            if token != self._token:
                return
            logger.error("Error fetching %s list: %s", self.kind, exc)
            self.error = self.load_error
            self.loading = False
            return
        if token != self._token:
            logger.debug("Discarding %s list for a previous session", self.kind)
            return
        self.records = [self.record_type.from_row(row) for row in rows or []]
        for record in self.records:
            self._remember(record)
        self.loading = False

    async def set_session(self, session: UserSession) -> None:
        """Re-fetch when the signed-in identity changes."""
        if session == self.session:
            return
        self.session = session
        self.records = []
        await self.load()

    def find(self, record_id: str) -> R | None:
        return next((record for record in self.records if record.id == record_id), None)

    async def remove(self, record_id: str) -> bool:
        record = self.find(record_id)
        if record is None:
            return False
        try:
            still_exists = await self.lifetime.guard(self._remove_remote(record))
        except RpcError as exc:
            logger.error("Error removing %s %s: %s", self.kind, record_id, exc)
            self.error = self.remove_error
            return False
        if still_exists:
            logger.warning("%s %s still exists after removal", self.kind, record_id)
            self._remember(record)
            self.error = self.remove_error
            return False
        self.records = [r for r in self.records if r.id != record_id]
        self._forget(record)
        return True

    async def _remove_remote(self, record: R) -> bool:
        """Remove the record remotely and return whether it still exists."""
        raise NotImplementedError

    def _remember(self, record: R) -> None:
        self.cache.set(self.kind, record.item_id, True)

    def _forget(self, record: R) -> None:
        self.cache.set(self.kind, record.item_id, False)

    def unmount(self) -> None:
        self.lifetime.close()


class StockAlertsPage(AlertListPage[StockAlertRecord]):
    kind = "stock_alert"
    list_function = "get_stock_alerts"
    record_type = StockAlertRecord
    load_error = "Failed to load stock alerts. Please try again later."

    async def _remove_remote(self, record: StockAlertRecord) -> bool:
        result = await self.client.rpc("toggle_stock_alert", {"item_id": record.item_id})
        return bool(result)


class PriceAlertsPage(AlertListPage[PriceAlertRecord]):
    kind = "price_alert"
    list_function = "get_price_alerts"
    record_type = PriceAlertRecord
    load_error = "Failed to load price alerts. Please try again later."

    async def _remove_remote(self, record: PriceAlertRecord) -> bool:
        result = await self.client.rpc("toggle_price_alert", {"item_id": record.item_id})
        return bool(result)


class WishlistPage(AlertListPage[WishlistItem]):
    kind = "wishlist"
    list_function = "get_wishlist_items"
    list_params = {"limit_val": 50, "offset_val": 0}
    record_type = WishlistItem
    load_error = "Failed to load wishlist items. Please try again later."

    async def _remove_remote(self, record: WishlistItem) -> bool:
        await self.client.rpc("remove_from_wishlist", {"item_id": record.item_id})
        return False


class SavedSearchAlertsPage(AlertListPage[SavedSearch]):
    kind = "saved_search"
    list_function = "get_saved_searches_with_alerts"
    record_type = SavedSearch
    load_error = "Failed to load saved searches. Please try again later."

    async def _remove_remote(self, record: SavedSearch) -> bool:
        await self.client.delete("saved_searches", filters={"id": f"eq.{record.id}"})
        return False

    def _remember(self, record: SavedSearch) -> None:
        self.cache.set(self.kind, record.id, record.alert_enabled)

    def _forget(self, record: SavedSearch) -> None:
        self.cache.invalidate(self.kind, record.id)

    async def update_alert_settings(self, search_id: str, enabled: bool, frequency: str = "daily") -> bool:
        if frequency not in ALERT_FREQUENCIES:
            self.error = f"Unsupported alert frequency: {frequency}"
            return False
        search = self.find(search_id)
        if search is None:
            return False
        try:
            await self.lifetime.guard(
                self.client.rpc(
                    "toggle_saved_search_alert",
                    {"search_id": search_id, "enable": enabled, "frequency": frequency},
                )
            )
        except RpcError as exc:
            logger.error("Error updating alert settings for %s: %s", search_id, exc)
            self.error = "Failed to update alert settings. Please try again."
            return False
        search.alert_enabled = enabled
        search.alert_frequency = frequency
        self.cache.set(self.kind, search_id, enabled)
        return True

    def search_url(self, search: SavedSearch) -> str:
        return search_url(search)


PAGES: dict[str, type[AlertListPage]] = {
    "stock": StockAlertsPage,
    "price": PriceAlertsPage,
    "wishlist": WishlistPage,
    "saved-search": SavedSearchAlertsPage,
}
