"""Stateful toggles for wishlist, price alert, stock alert and follow buttons.

Each toggle mirrors one button: on mount it asks the backend whether the
alert exists, and on activation it either removes the alert, opens a
preferences form, or redirects an anonymous user to sign in. The armed flag
lives in the shared :class:`~trove.state.cache.StatusCache`, so every toggle
for the same item sees the same value once a call settles.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from trove.logic.stock import StockStatus
from trove.rpc.client import RpcClient, RpcError
from trove.rpc.models import FollowedSeller
from trove.rpc.session import AUTH_PATH, UserSession
from trove.state.cache import StatusCache, default_cache
from trove.state.lifetime import Lifetime

logger = logging.getLogger(__name__)

DEFAULT_TARGET_RATIO = 0.9


@dataclass(slots=True)
class AlertPreferences:
    notify_email: bool = True
    notify_push: bool = True
    target_price: str = ""


class AlertToggle:
    kind: ClassVar[str]
    check_function: ClassVar[str]
    add_function: ClassVar[str]
    remove_function: ClassVar[str]
    armed_label: ClassVar[str] = "Alert Set"
    unarmed_label: ClassVar[str]
    uses_form: ClassVar[bool] = True
    create_error: ClassVar[str] = "Failed to create alert. Please try again."

    def __init__(
        self,
        client: RpcClient,
        session: UserSession,
        item_id: str,
        *,
        cache: StatusCache | None = None,
        lifetime: Lifetime | None = None,
        on_change: Callable[[bool], None] | None = None,
    ) -> None:
        self.client = client
        self.session = session
        self.item_id = item_id
        self.cache = cache if cache is not None else default_cache
        self.lifetime = lifetime or Lifetime()
        self.loading = False
        self.form_open = False
        self.form = AlertPreferences()
        self.error = ""
        self.redirect: str | None = None
        self._on_change = on_change
        self._unsubscribe = self.cache.subscribe(self.kind, item_id, self._cache_changed)

    @property
    def armed(self) -> bool:
        if not self.session.is_authenticated:
            return False
        return bool(self.cache.get(self.kind, self.item_id))

    @property
    def label(self) -> str:
        return self.armed_label if self.armed else self.unarmed_label

    async def mount(self) -> None:
        if not self.session.is_authenticated:
            return
        try:
            exists = await self.lifetime.guard(self._check())
        except RpcError as exc:
            logger.error("Error checking %s status for %s: %s", self.kind, self.item_id, exc)
            return
        self.cache.set(self.kind, self.item_id, bool(exists))

    def unmount(self) -> None:
        self.lifetime.close()
        self._unsubscribe()

    async def activate(self) -> None:
        if not self.session.is_authenticated:
            self.redirect = AUTH_PATH
            return
        if self.loading:
            return
        if self.armed:
            await self.disarm()
        elif self.uses_form:
            self.open_form()
        else:
            await self._arm({})

    def open_form(self) -> None:
        self.form = self.default_preferences()
        self.error = ""
        self.form_open = True

    def cancel(self) -> None:
        self.form_open = False
        self.error = ""

    async def submit(self) -> bool:
        self.error = ""
        try:
            params = self.validate(self.form)
        except ValueError as exc:
            self.error = str(exc)
            return False
        return await self._arm(params, surface_errors=True)

    def default_preferences(self) -> AlertPreferences:
        return AlertPreferences()

    def validate(self, form: AlertPreferences) -> dict[str, Any]:
        return {"notify_email": form.notify_email, "notify_push": form.notify_push}

    async def _check(self) -> bool:
        result = await self.client.rpc(self.check_function, {"item_id": self.item_id})
        return bool(result)

    async def _add(self, params: dict[str, Any]) -> bool:
        """Create the alert and return whether it exists afterwards."""
        await self.client.rpc(self.add_function, {"item_id": self.item_id, **params})
        return True

    async def _remove(self) -> bool:
        """Remove the alert and return whether it still exists afterwards."""
        await self.client.rpc(self.remove_function, {"item_id": self.item_id})
        return False

    async def _arm(self, params: dict[str, Any], *, surface_errors: bool = False) -> bool:
        self.loading = True
        try:
            exists = await self.lifetime.guard(self._add(params))
        except RpcError as exc:
            logger.error("Error creating %s for %s: %s", self.kind, self.item_id, exc)
            if surface_errors:
                self.error = self.create_error
            return False
        finally:
            self.loading = False
        self.cache.set(self.kind, self.item_id, exists)
        self.form_open = False
        return True

    async def disarm(self) -> bool:
        self.loading = True
        try:
            exists = await self.lifetime.guard(self._remove())
        except RpcError as exc:
            logger.error("Error removing %s for %s: %s", self.kind, self.item_id, exc)
            return False
        finally:
            self.loading = False
        self.cache.set(self.kind, self.item_id, exists)
        return True

    def _cache_changed(self, kind: str, subject_id: str, value: bool | None) -> None:
        if self._on_change is not None:
            self._on_change(bool(value))


class WishlistToggle(AlertToggle):
    kind = "wishlist"
    check_function = "is_in_wishlist"
    add_function = "add_to_wishlist"
    remove_function = "remove_from_wishlist"
    armed_label = "Saved"
    unarmed_label = "Save"
    uses_form = False


class FlippingAlertToggle(AlertToggle):
    """Alerts whose backend function deletes an existing alert or creates a
    missing one, returning whether the alert exists afterwards.

    Removal checks first, so removing an alert that is already gone never
    recreates it.
    """

    async def _add(self, params: dict[str, Any]) -> bool:
        result = await self.client.rpc(self.add_function, {"item_id": self.item_id, **params})
        return bool(result)

    async def _remove(self) -> bool:
        if not await self._check():
            return False
        result = await self.client.rpc(self.remove_function, {"item_id": self.item_id})
        return bool(result)


class PriceAlertToggle(FlippingAlertToggle):
    kind = "price_alert"
    check_function = "has_price_alert"
    add_function = "toggle_price_alert"
    remove_function = "toggle_price_alert"
    unarmed_label = "Price Alert"
    create_error = "Failed to create price alert. Please try again."

    def __init__(self, client: RpcClient, session: UserSession, item_id: str, *, price: float, **kwargs: Any) -> None:
        super().__init__(client, session, item_id, **kwargs)
        self.price = price

    def default_preferences(self) -> AlertPreferences:
        return AlertPreferences(target_price=f"{self.price * DEFAULT_TARGET_RATIO:.2f}")

    def validate(self, form: AlertPreferences) -> dict[str, Any]:
        try:
            target = float(form.target_price)
        except (TypeError, ValueError):
            raise ValueError("Please enter a valid target price") from None
        if not math.isfinite(target) or target <= 0:
            raise ValueError("Please enter a valid target price")
        return {
            "target_price": target,
            "notify_email": form.notify_email,
            "notify_push": form.notify_push,
        }


class StockAlertToggle(FlippingAlertToggle):
    kind = "stock_alert"
    check_function = "has_stock_alert"
    add_function = "toggle_stock_alert"
    remove_function = "toggle_stock_alert"
    unarmed_label = "Notify When Available"
    create_error = "Failed to create stock alert. Please try again."

    def __init__(self, client: RpcClient, session: UserSession, item_id: str, *, stock_status: str, **kwargs: Any) -> None:
        super().__init__(client, session, item_id, **kwargs)
        self.stock_status = stock_status

    @property
    def visible(self) -> bool:
        """Only out-of-stock items offer a back-in-stock alert."""
        return self.stock_status == StockStatus.OUT_OF_STOCK.value


class FollowSellerToggle(AlertToggle):
    """Follow button. It has no error slot: failures are only logged."""

    kind = "follow_seller"
    armed_label = "Following"
    unarmed_label = "Follow"
    uses_form = False

    @property
    def visible(self) -> bool:
        return self.session.is_authenticated

    async def activate(self) -> None:
        if not self.session.is_authenticated:
            return
        await super().activate()

    async def _check(self) -> bool:
        rows = await self.client.rpc("get_followed_sellers")
        followed = [FollowedSeller.from_row(row) for row in rows or []]
        return any(seller.id == self.item_id for seller in followed)

    async def _add(self, params: dict[str, Any]) -> bool:
        await self.client.insert("seller_followers", {"seller_id": self.item_id})
        return True

    async def _remove(self) -> bool:
        await self.client.delete("seller_followers", filters={"seller_id": f"eq.{self.item_id}"})
        return False


TOGGLES: dict[str, type[AlertToggle]] = {
    "wishlist": WishlistToggle,
    "price": PriceAlertToggle,
    "stock": StockAlertToggle,
    "follow": FollowSellerToggle,
}
