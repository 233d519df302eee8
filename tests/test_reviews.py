import pytest

from conftest import ANONYMOUS, SIGNED_IN
from trove.logic.reviews import ItemReviewForm, SellerReviewForm
from trove.logic.stock import StockStatus, StockStatusEditor


@pytest.mark.asyncio
async def test_item_review_submission_resets_and_notifies(backend, client):
    backend.on("submit_item_review", None)
    refreshed = []

    async def on_submitted():
        refreshed.append(True)

    form = ItemReviewForm(client, SIGNED_IN, "item-1", on_submitted=on_submitted)
    form.rating = 4
    form.text = "Lovely patina"

    assert await form.submit()
    assert backend.calls_to("submit_item_review") == [{"p_item_id": "item-1", "p_rating": 4, "p_review_text": "Lovely patina"}]
    assert form.success == "Review submitted successfully!"
    assert (form.rating, form.text) == (0, "")
    assert refreshed == [True]


@pytest.mark.asyncio
async def test_review_requires_login_and_rating(backend, client):
    anonymous = ItemReviewForm(client, ANONYMOUS, "item-1")
    anonymous.rating = 5
    assert not await anonymous.submit()
    assert anonymous.error == "You must be logged in to submit a review."

    unrated = ItemReviewForm(client, SIGNED_IN, "item-1")
    assert not await unrated.submit()
    assert unrated.error == "Please select a rating."
    assert backend.calls == []


@pytest.mark.asyncio
async def test_seller_review_failure_keeps_input(backend, client):
    backend.fail("submit_seller_review", message="You already reviewed this transaction")
    form = SellerReviewForm(client, SIGNED_IN, "seller-1", "tx-1")
    form.rating = 2
    form.text = "Slow shipping"

    assert not await form.submit()
    assert form.error == "You already reviewed this transaction"
    assert form.rating == 2
    assert backend.calls_to("submit_seller_review") == [
        {"p_transaction_id": "tx-1", "p_seller_user_id": "seller-1", "p_rating": 2, "p_review_comment": "Slow shipping"}
    ]


@pytest.mark.asyncio
async def test_stock_editor(backend, client):
    backend.on("update_item_stock_status", None)
    updates = []
    editor = StockStatusEditor(client, "item-1", "in_stock", is_seller=True, on_update=updates.append)

    assert not await editor.update("discontinued")
    assert editor.error == "Unknown stock status: discontinued"

    assert await editor.update("low_stock")
    assert editor.status == "low_stock"
    assert updates == ["low_stock"]
    assert backend.calls_to("update_item_stock_status") == [{"item_id": "item-1", "new_stock_status": "low_stock"}]
    assert StockStatus(editor.status).label == "Low Stock"

    backend.fail("update_item_stock_status")
    assert not await editor.update("out_of_stock")
    assert editor.error == "Failed to update stock status"
    assert editor.status == "low_stock"


@pytest.mark.asyncio
async def test_stock_editor_is_seller_only(backend, client):
    editor = StockStatusEditor(client, "item-1", "in_stock", is_seller=False)
    assert not await editor.update("out_of_stock")
    assert backend.calls == []
