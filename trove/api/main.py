"""FastAPI application for alerts, reviews, bids and item details."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, AsyncIterator

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from trove.logic.analytics import track_item_view, track_profile_view
from trove.logic.highlight import highlight, highlight_segments
from trove.logic.price_history import fetch_price_history, summarize
from trove.logic.push import register_push_subscription
from trove.logic.reviews import MAX_RATING, MIN_RATING, ItemReviewForm, ReviewForm, SellerReviewForm
from trove.logic.saved_search import ALERT_FREQUENCIES
from trove.logic.search import SORT_ORDERS, SearchParams, search_items
from trove.logic.stock import STATUS_LABELS, StockStatusEditor
from trove.logic.wishlist import WishlistCount
from trove.rails import build_rails
from trove.rpc.client import RpcClient, RpcError
from trove.rpc.session import AUTH_PATH, UserSession, create_client_from_env
from trove.state.alert_list import PAGES, SavedSearchAlertsPage
from trove.state.paginated import LISTS
from trove.state.toggle import TOGGLES, AlertToggle, PriceAlertToggle, StockAlertToggle

logger = logging.getLogger(__name__)

load_dotenv()

app = FastAPI(title="Treasure Trove API")


class SignInRequired(Exception):
    pass


class AlertPreferencesRequest(BaseModel):
    notify_email: bool = True
    notify_push: bool = True
    target_price: str | None = None


class ToggleResponse(BaseModel):
    kind: str
    item_id: str
    armed: bool
    label: str
    visible: bool = True


class AlertListResponse(BaseModel):
    view: str
    records: list[dict[str, Any]]
    error: str | None = None


class PageResponse(BaseModel):
    records: list[dict[str, Any]]
    page: int
    has_more: bool


class ReviewRequest(BaseModel):
    rating: int
    text: str = ""
    transaction_id: str | None = None


class MessageResponse(BaseModel):
    message: str


class StockStatusRequest(BaseModel):
    status: str


class AlertSettingsRequest(BaseModel):
    enabled: bool
    frequency: str = "daily"


class PushSubscriptionRequest(BaseModel):
    endpoint: str
    auth: str = ""
    p256dh: str = ""


class ChartPointResponse(BaseModel):
    date: str
    price: float
    label: str


class PriceHistoryResponse(BaseModel):
    points: list[ChartPointResponse]
    highest: float
    lowest: float
    change: float
    percent_change: float


class HighlightResponse(BaseModel):
    html: str
    segments: list[dict[str, Any]]


class RailResponse(BaseModel):
    kind: str
    title: str
    items: list[dict[str, Any]]


class SearchResponseModel(BaseModel):
    items: list[dict[str, Any]]
    total: int
    took: int
    search_mode: str


class WishlistCountResponse(BaseModel):
    count: int
    badge: str


@app.exception_handler(RpcError)
async def rpc_error_handler(request: Request, exc: RpcError) -> JSONResponse:
    logger.error("Backend call failed for %s: %s", request.url.path, exc)
    return JSONResponse({"detail": exc.message}, status_code=502)


@app.exception_handler(SignInRequired)
async def sign_in_handler(request: Request, exc: SignInRequired) -> JSONResponse:
    return JSONResponse({"detail": "Sign in required", "redirect": AUTH_PATH}, status_code=401)


def get_session(
    authorization: str | None = Header(None),
    x_user_id: str | None = Header(None),
) -> UserSession:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return UserSession(user_id=x_user_id, access_token=token)


async def get_client(session: UserSession = Depends(get_session)) -> AsyncIterator[RpcClient]:
    client = create_client_from_env(session.access_token)
    try:
        yield client
    finally:
        await client.close()


def _record(record: Any) -> dict[str, Any]:
    return dataclasses.asdict(record)


def _build_toggle(
    kind: str,
    item_id: str,
    client: RpcClient,
    session: UserSession,
    price: float,
    stock_status: str,
) -> AlertToggle:
    toggle_cls = TOGGLES.get(kind)
    if toggle_cls is None:
        raise HTTPException(status_code=404, detail=f"Unknown alert kind: {kind}")
    if issubclass(toggle_cls, PriceAlertToggle):
        return toggle_cls(client, session, item_id, price=price)
    if issubclass(toggle_cls, StockAlertToggle):
        return toggle_cls(client, session, item_id, stock_status=stock_status)
    return toggle_cls(client, session, item_id)


def _toggle_response(toggle: AlertToggle) -> ToggleResponse:
    return ToggleResponse(
        kind=toggle.kind,
        item_id=toggle.item_id,
        armed=toggle.armed,
        label=toggle.label,
        visible=getattr(toggle, "visible", True),
    )


@app.get("/items/{item_id}/alerts/{kind}", response_model=ToggleResponse)
async def get_alert(
    item_id: str,
    kind: str,
    price: float = Query(0.0),
    stock_status: str = Query("out_of_stock"),
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> ToggleResponse:
    toggle = _build_toggle(kind, item_id, client, session, price, stock_status)
    try:
        await toggle.mount()
        return _toggle_response(toggle)
    finally:
        toggle.unmount()


@app.post("/items/{item_id}/alerts/{kind}", response_model=ToggleResponse)
async def create_alert(
    item_id: str,
    kind: str,
    payload: AlertPreferencesRequest | None = None,
    price: float = Query(0.0),
    stock_status: str = Query("out_of_stock"),
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> ToggleResponse:
    if not session.is_authenticated:
        raise SignInRequired()
    toggle = _build_toggle(kind, item_id, client, session, price, stock_status)
    try:
        if not getattr(toggle, "visible", True):
            raise HTTPException(status_code=409, detail=f"{toggle.unarmed_label} is not available for this item")
        await toggle.mount()
        if toggle.armed:
            return _toggle_response(toggle)
        if toggle.uses_form:
            toggle.open_form()
            payload = payload or AlertPreferencesRequest()
            toggle.form.notify_email = payload.notify_email
            toggle.form.notify_push = payload.notify_push
            if payload.target_price is not None:
                toggle.form.target_price = payload.target_price
            try:
                toggle.validate(toggle.form)
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from None
            if not await toggle.submit():
                raise HTTPException(status_code=502, detail=toggle.error or toggle.create_error)
        else:
            await toggle.activate()
            if not toggle.armed:
                raise HTTPException(status_code=502, detail=toggle.create_error)
        return _toggle_response(toggle)
    finally:
        toggle.unmount()


@app.delete("/items/{item_id}/alerts/{kind}", response_model=ToggleResponse)
async def delete_alert(
    item_id: str,
    kind: str,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> ToggleResponse:
    if not session.is_authenticated:
        raise SignInRequired()
    toggle = _build_toggle(kind, item_id, client, session, 0.0, "out_of_stock")
    try:
        await toggle.mount()
        if not toggle.armed:
            return _toggle_response(toggle)
        if not await toggle.disarm():
            raise HTTPException(status_code=502, detail=f"Failed to remove {toggle.kind}")
        return _toggle_response(toggle)
    finally:
        toggle.unmount()


def _build_page(kind: str, client: RpcClient, session: UserSession):
    page_cls = PAGES.get(kind)
    if page_cls is None:
        raise HTTPException(status_code=404, detail=f"Unknown alert list: {kind}")
    return page_cls(client, session)


async def _load_page(kind: str, client: RpcClient, session: UserSession):
    page = _build_page(kind, client, session)
    await page.load()
    if page.redirect:
        raise SignInRequired()
    return page


@app.get("/me/alerts/{kind}", response_model=AlertListResponse)
async def list_alerts(
    kind: str,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> AlertListResponse:
    page = await _load_page(kind, client, session)
    return AlertListResponse(
        view=page.view.value,
        records=[_record(record) for record in page.records],
        error=page.error or None,
    )


@app.delete("/me/alerts/{kind}/{record_id}", response_model=MessageResponse)
async def remove_alert(
    kind: str,
    record_id: str,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    page = await _load_page(kind, client, session)
    if page.find(record_id) is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    if not await page.remove(record_id):
        raise HTTPException(status_code=502, detail=page.error)
    return MessageResponse(message="Removed")


@app.put("/me/saved-searches/{search_id}/alert", response_model=MessageResponse)
async def update_saved_search_alert(
    search_id: str,
    payload: AlertSettingsRequest,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    page: SavedSearchAlertsPage = await _load_page("saved-search", client, session)
    if page.find(search_id) is None:
        raise HTTPException(status_code=404, detail="Saved search not found")
    if payload.frequency not in ALERT_FREQUENCIES:
        raise HTTPException(status_code=422, detail=f"Unsupported alert frequency: {payload.frequency}")
    if not await page.update_alert_settings(search_id, payload.enabled, payload.frequency):
        raise HTTPException(status_code=502, detail=page.error)
    return MessageResponse(message="Alert settings updated")


async def _fetch_page(list_name: str, subject_id: str, page: int, client: RpcClient) -> PageResponse:
    if page < 1:
        raise HTTPException(status_code=422, detail="Page must be at least 1")
    paged = LISTS[list_name](client)
    records = await paged.fetch_page(subject_id, page)
    return PageResponse(
        records=[_record(record) for record in records],
        page=page,
        has_more=len(records) == paged.page_size,
    )


@app.get("/items/{item_id}/reviews", response_model=PageResponse)
async def item_reviews(item_id: str, page: int = Query(1), client: RpcClient = Depends(get_client)) -> PageResponse:
    return await _fetch_page("item-reviews", item_id, page, client)


@app.get("/sellers/{seller_id}/reviews", response_model=PageResponse)
async def seller_reviews(seller_id: str, page: int = Query(1), client: RpcClient = Depends(get_client)) -> PageResponse:
    return await _fetch_page("seller-reviews", seller_id, page, client)


@app.get("/items/{item_id}/bids", response_model=PageResponse)
async def item_bids(item_id: str, page: int = Query(1), client: RpcClient = Depends(get_client)) -> PageResponse:
    return await _fetch_page("bids", item_id, page, client)


async def _submit_review(form: ReviewForm, payload: ReviewRequest) -> MessageResponse:
    if not form.session.is_authenticated:
        raise SignInRequired()
    if not MIN_RATING <= payload.rating <= MAX_RATING:
        raise HTTPException(status_code=422, detail="Please select a rating.")
    form.rating = payload.rating
    form.text = payload.text
    if not await form.submit():
        raise HTTPException(status_code=502, detail=form.error)
    return MessageResponse(message=form.success)


@app.post("/items/{item_id}/reviews", response_model=MessageResponse)
async def submit_item_review(
    item_id: str,
    payload: ReviewRequest,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    return await _submit_review(ItemReviewForm(client, session, item_id), payload)


@app.post("/sellers/{seller_id}/reviews", response_model=MessageResponse)
async def submit_seller_review(
    seller_id: str,
    payload: ReviewRequest,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    if not payload.transaction_id:
        raise HTTPException(status_code=422, detail="transaction_id is required")
    return await _submit_review(SellerReviewForm(client, session, seller_id, payload.transaction_id), payload)


@app.put("/items/{item_id}/stock-status", response_model=MessageResponse)
async def update_stock_status(
    item_id: str,
    payload: StockStatusRequest,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    if not session.is_authenticated:
        raise SignInRequired()
    # Ownership is enforced by the backend function.
    editor = StockStatusEditor(client, item_id, "", is_seller=True)
    if payload.status not in STATUS_LABELS:
        raise HTTPException(status_code=422, detail=f"Unknown stock status: {payload.status}")
    if not await editor.update(payload.status):
        raise HTTPException(status_code=502, detail=editor.error)
    return MessageResponse(message=f"Stock status updated to {editor.status}")


@app.get("/items/{item_id}/price-history", response_model=PriceHistoryResponse)
async def price_history(
    item_id: str,
    current_price: float = Query(...),
    client: RpcClient = Depends(get_client),
) -> PriceHistoryResponse:
    history = await fetch_price_history(client, item_id)
    summary = summarize(history, current_price)
    return PriceHistoryResponse(
        points=[
            ChartPointResponse(date=point.date.isoformat(), price=point.price, label=point.label)
            for point in summary.points
        ],
        highest=summary.highest,
        lowest=summary.lowest,
        change=summary.change,
        percent_change=summary.percent_change,
    )


@app.get("/highlight", response_model=HighlightResponse)
async def highlight_text(text: str = Query(...), term: str = Query(""), mark_class: str = Query("")) -> HighlightResponse:
    return HighlightResponse(
        html=highlight(text, term, mark_class),
        segments=[_record(segment) for segment in highlight_segments(text, term)],
    )


@app.get("/search", response_model=SearchResponseModel)
async def search(
    q: str = Query(""),
    category: str | None = Query(None),
    min_price: float | None = Query(None),
    max_price: float | None = Query(None),
    condition: str | None = Query(None),
    sort: str = Query("newest"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    client: RpcClient = Depends(get_client),
) -> SearchResponseModel:
    if sort not in SORT_ORDERS:
        raise HTTPException(status_code=422, detail=f"sort must be one of {sorted(SORT_ORDERS)}")
    params = SearchParams(q, category, min_price, max_price, condition, sort, limit, offset)
    result = await search_items(client, params)
    return SearchResponseModel(
        items=[_record(item) for item in result.items],
        total=result.total,
        took=result.took,
        search_mode=result.search_mode,
    )


@app.get("/me/wishlist/count", response_model=WishlistCountResponse)
async def wishlist_count(
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> WishlistCountResponse:
    if not session.is_authenticated:
        raise SignInRequired()
    counter = WishlistCount(client, session)
    await counter.refresh()
    return WishlistCountResponse(count=counter.count, badge=counter.badge)


@app.get("/rails", response_model=list[RailResponse])
async def home_rails(
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> list[RailResponse]:
    response = []
    for rail in build_rails(client, session):
        await rail.load()
        if rail.items:
            response.append(RailResponse(kind=rail.kind, title=rail.title, items=[_record(item) for item in rail.items]))
        rail.unmount()
    return response


@app.post("/push/subscriptions", response_model=MessageResponse, status_code=201)
async def subscribe_push(
    payload: PushSubscriptionRequest,
    client: RpcClient = Depends(get_client),
    session: UserSession = Depends(get_session),
) -> MessageResponse:
    if not session.is_authenticated:
        raise SignInRequired()
    if not await register_push_subscription(client, payload.endpoint, payload.auth, payload.p256dh):
        raise HTTPException(status_code=502, detail="Failed to subscribe to push notifications")
    return MessageResponse(message="Subscribed")


@app.post("/items/{item_id}/views", status_code=202)
async def record_item_view(item_id: str, client: RpcClient = Depends(get_client)) -> JSONResponse:
    await track_item_view(client, item_id)
    return JSONResponse({"status": "accepted"}, status_code=202)


@app.post("/profiles/{profile_id}/views", status_code=202)
async def record_profile_view(profile_id: str, client: RpcClient = Depends(get_client)) -> JSONResponse:
    await track_profile_view(client, profile_id)
    return JSONResponse({"status": "accepted"}, status_code=202)
