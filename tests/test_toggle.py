import asyncio

import pytest

from conftest import ANONYMOUS, SIGNED_IN
from trove.state.cache import StatusCache
from trove.state.lifetime import LifetimeClosed
from trove.state.toggle import FollowSellerToggle, PriceAlertToggle, StockAlertToggle, WishlistToggle


def toggle_state(backend, check_function, toggle_function, *, initial=False):
    state = {"armed": initial}

    def flip(params):
        state["armed"] = not state["armed"]
        return state["armed"]

    backend.on(check_function, handler=lambda params: state["armed"])
    backend.on(toggle_function, handler=flip)
    return state


@pytest.mark.asyncio
async def test_stock_alert_survives_remount(backend, client, cache):
    state = toggle_state(backend, "has_stock_alert", "toggle_stock_alert")
    toggle = StockAlertToggle(client, SIGNED_IN, "item-9", stock_status="out_of_stock", cache=cache)
    assert toggle.visible

    await toggle.mount()
    assert toggle.label == "Notify When Available"

    await toggle.activate()
    assert toggle.form_open
    assert toggle.form.notify_email and toggle.form.notify_push
    assert await toggle.submit()
    assert toggle.label == "Alert Set"
    assert not toggle.form_open
    assert state["armed"]
    assert backend.calls_to("toggle_stock_alert") == [{"item_id": "item-9", "notify_email": True, "notify_push": True}]
    toggle.unmount()

    remounted = StockAlertToggle(client, SIGNED_IN, "item-9", stock_status="out_of_stock", cache=StatusCache())
    await remounted.mount()
    assert remounted.label == "Alert Set"
    assert len(backend.calls_to("has_stock_alert")) == 2


@pytest.mark.asyncio
async def test_stock_alert_sends_channels_as_chosen(backend, client, cache):
    toggle_state(backend, "has_stock_alert", "toggle_stock_alert")
    toggle = StockAlertToggle(client, SIGNED_IN, "item-9", stock_status="out_of_stock", cache=cache)
    await toggle.mount()
    await toggle.activate()
    toggle.form.notify_email = False
    toggle.form.notify_push = False

    assert await toggle.submit()
    assert toggle.error == ""
    assert toggle.armed
    assert backend.calls_to("toggle_stock_alert") == [{"item_id": "item-9", "notify_email": False, "notify_push": False}]


def test_stock_alert_hidden_when_in_stock(client, cache):
    toggle = StockAlertToggle(client, SIGNED_IN, "item-9", stock_status="in_stock", cache=cache)
    assert not toggle.visible


@pytest.mark.asyncio
async def test_anonymous_activation_redirects_without_calls(backend, client, cache):
    toggle = PriceAlertToggle(client, ANONYMOUS, "item-1", price=20.0, cache=cache)
    await toggle.mount()
    await toggle.activate()
    assert toggle.redirect == "/auth"
    assert not toggle.form_open
    assert not toggle.armed
    assert backend.calls == []


@pytest.mark.asyncio
async def test_price_alert_defaults_and_validation(backend, client, cache):
    toggle_state(backend, "has_price_alert", "toggle_price_alert")
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=100.0, cache=cache)
    await toggle.mount()
    await toggle.activate()
    assert toggle.form.target_price == "90.00"

    for bad in ("", "abc", "-5", "0", "nan"):
        toggle.form.target_price = bad
        assert not await toggle.submit()
        assert toggle.error == "Please enter a valid target price"
    assert backend.calls_to("toggle_price_alert") == []

    toggle.form.target_price = "45.5"
    toggle.form.notify_push = False
    assert await toggle.submit()
    assert toggle.error == ""
    assert backend.calls_to("toggle_price_alert") == [
        {"item_id": "item-1", "target_price": 45.5, "notify_email": True, "notify_push": False}
    ]
    assert toggle.label == "Alert Set"


@pytest.mark.asyncio
async def test_cancel_closes_form_without_calls(backend, client, cache):
    toggle_state(backend, "has_price_alert", "toggle_price_alert")
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=10.0, cache=cache)
    await toggle.mount()
    await toggle.activate()
    toggle.cancel()
    assert not toggle.form_open
    assert backend.calls_to("toggle_price_alert") == []


@pytest.mark.asyncio
async def test_armed_activation_removes_alert(backend, client, cache):
    state = toggle_state(backend, "has_price_alert", "toggle_price_alert", initial=True)
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=10.0, cache=cache)
    await toggle.mount()
    assert toggle.armed

    await toggle.activate()
    assert not toggle.armed
    assert not toggle.form_open
    assert not state["armed"]


@pytest.mark.asyncio
async def test_failed_create_surfaces_error_and_stays_unarmed(backend, client, cache):
    backend.on("has_price_alert", False)
    backend.fail("toggle_price_alert")
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=10.0, cache=cache)
    await toggle.mount()
    await toggle.activate()

    assert not await toggle.submit()
    assert toggle.error == "Failed to create price alert. Please try again."
    assert not toggle.armed
    assert not toggle.loading


@pytest.mark.asyncio
async def test_wishlist_toggles_directly_and_shares_cache(backend, client, cache):
    backend.on("is_in_wishlist", False)
    backend.on("add_to_wishlist", None)
    backend.on("remove_from_wishlist", None)
    changes = []
    card = WishlistToggle(client, SIGNED_IN, "item-3", cache=cache)
    await card.mount()
    detail = WishlistToggle(client, SIGNED_IN, "item-3", cache=cache, on_change=changes.append)
    assert not detail.armed
    assert card.label == "Save"

    await card.activate()
    assert not card.form_open
    assert card.label == "Saved"
    assert detail.armed
    assert changes == [True]

    await detail.activate()
    assert not card.armed
    assert changes == [True, False]
    assert backend.calls_to("remove_from_wishlist") == [{"item_id": "item-3"}]


@pytest.mark.asyncio
async def test_removing_missing_alert_is_harmless(backend, client, cache):
    backend.on("remove_from_wishlist", None)
    toggle = WishlistToggle(client, SIGNED_IN, "item-404", cache=cache)
    assert await toggle.disarm()
    assert not toggle.armed
    assert toggle.label == "Save"


@pytest.mark.asyncio
async def test_failed_check_leaves_toggle_unarmed(backend, client, cache):
    backend.fail("is_in_wishlist")
    toggle = WishlistToggle(client, SIGNED_IN, "item-3", cache=cache)
    await toggle.mount()
    assert not toggle.armed
    assert cache.get("wishlist", "item-3") is None


@pytest.mark.asyncio
async def test_unmount_cancels_in_flight_check(client, cache):
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=10.0, cache=cache)
    started = asyncio.Event()

    async def slow_check():
        started.set()
        await asyncio.Event().wait()

    toggle._check = slow_check
    mounting = asyncio.create_task(toggle.mount())
    await started.wait()
    toggle.unmount()

    with pytest.raises(LifetimeClosed):
        await mounting
    assert cache.get("price_alert", "item-1") is None


@pytest.mark.asyncio
async def test_follow_seller_uses_followers_table(backend, client, cache):
    backend.on("get_followed_sellers", [{"id": "seller-1", "username": "hoarder"}])
    backend.tables["seller_followers"].append({"id": "f-1", "seller_id": "seller-1"})
    toggle = FollowSellerToggle(client, SIGNED_IN, "seller-1", cache=cache)
    await toggle.mount()
    assert toggle.label == "Following"

    await toggle.activate()
    assert toggle.label == "Follow"
    assert backend.tables["seller_followers"] == []

    await toggle.activate()
    assert toggle.label == "Following"
    assert backend.tables["seller_followers"][0]["seller_id"] == "seller-1"


@pytest.mark.asyncio
async def test_follow_seller_hidden_and_inert_when_anonymous(backend, client, cache):
    toggle = FollowSellerToggle(client, ANONYMOUS, "seller-1", cache=cache)
    assert not toggle.visible
    await toggle.activate()
    assert toggle.redirect is None
    assert backend.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "toggle_cls, check_function, toggle_function, extra",
    [
        (PriceAlertToggle, "has_price_alert", "toggle_price_alert", {"price": 12.0}),
        (StockAlertToggle, "has_stock_alert", "toggle_stock_alert", {"stock_status": "out_of_stock"}),
    ],
)
async def test_removing_missing_flipping_alert_leaves_none(backend, client, cache, toggle_cls, check_function, toggle_function, extra):
    state = toggle_state(backend, check_function, toggle_function)
    toggle = toggle_cls(client, SIGNED_IN, "item-404", cache=cache, **extra)

    assert await toggle.disarm()
    assert toggle.armed == state["armed"] is False
    assert backend.calls_to(toggle_function) == []

    assert await toggle.disarm()
    assert toggle.armed == state["armed"] is False


@pytest.mark.asyncio
async def test_armed_state_follows_backend_result(backend, client, cache):
    # The alert already exists remotely, so the flip deletes it.
    state = toggle_state(backend, "has_price_alert", "toggle_price_alert", initial=True)
    toggle = PriceAlertToggle(client, SIGNED_IN, "item-1", price=10.0, cache=cache)
    await toggle.activate()
    toggle.form.target_price = "8"

    assert await toggle.submit()
    assert not state["armed"]
    assert toggle.armed == state["armed"]
