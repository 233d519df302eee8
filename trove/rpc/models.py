"""View-models mirroring rows returned by the backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from trove.utils.dates import parse_timestamp


def _price(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


@dataclass(slots=True)
class AlertRecord:
    id: str
    item_id: str
    created_at: str
    notify_email: bool
    notify_push: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AlertRecord":
        return cls(**_alert_fields(row))


def _alert_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": str(row["id"]),
        "item_id": str(row["item_id"]),
        "created_at": row.get("created_at") or "",
        "notify_email": bool(row.get("notify_email", True)),
        "notify_push": bool(row.get("notify_push", True)),
    }


@dataclass(slots=True)
class StockAlertRecord(AlertRecord):
    title: str = ""
    stock_status: str = "out_of_stock"
    price: float | None = None
    images: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StockAlertRecord":
        return cls(
            **_alert_fields(row),
            title=row.get("title") or "",
            stock_status=row.get("stock_status") or "out_of_stock",
            price=_price(row.get("price")),
            images=list(row.get("images") or []),
        )


@dataclass(slots=True)
class PriceAlertRecord(AlertRecord):
    title: str = ""
    current_price: float | None = None
    target_price: float | None = None
    images: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PriceAlertRecord":
        return cls(
            **_alert_fields(row),
            title=row.get("title") or "",
            current_price=_price(row.get("current_price")),
            target_price=_price(row.get("target_price")),
            images=list(row.get("images") or []),
        )


@dataclass(slots=True)
class WishlistItem:
    id: str
    title: str
    price: float | None
    condition: str | None
    images: list[str]
    added_at: str

    @property
    def item_id(self) -> str:
        return self.id

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WishlistItem":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            price=_price(row.get("price")),
            condition=row.get("condition"),
            images=list(row.get("images") or []),
            added_at=row.get("added_at") or "",
        )


@dataclass(slots=True)
class PriceHistoryPoint:
    old_price: float
    new_price: float
    changed_at: datetime
    id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PriceHistoryPoint":
        return cls(
            old_price=float(row["old_price"]),
            new_price=float(row["new_price"]),
            changed_at=parse_timestamp(row["changed_at"]),
            id=str(row["id"]) if row.get("id") is not None else None,
        )


@dataclass(slots=True)
class ReviewRecord:
    id: str
    rating: int
    review_text: str | None
    created_at: str
    author_username: str | None = None
    author_avatar_url: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ReviewRecord":
        # Item reviews and seller reviews name the same columns differently.
        return cls(
            id=str(row["id"]),
            rating=int(row["rating"]),
            review_text=row.get("review_text", row.get("comment")),
            created_at=row.get("created_at") or "",
            author_username=row.get("username", row.get("reviewer_username")),
            author_avatar_url=row.get("avatar_url", row.get("reviewer_avatar_url")),
        )


@dataclass(slots=True)
class BidRecord:
    id: str
    bid_amount: float
    created_at: str
    bidder_username: str | None = None
    bidder_avatar_url: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BidRecord":
        return cls(
            id=str(row["id"]),
            bid_amount=float(row["bid_amount"]),
            created_at=row.get("created_at") or "",
            bidder_username=row.get("bidder_username"),
            bidder_avatar_url=row.get("bidder_avatar_url"),
        )


@dataclass(slots=True)
class SavedSearch:
    id: str
    name: str
    query: str
    filters: dict[str, Any]
    alert_enabled: bool = False
    alert_frequency: str = "daily"
    last_alert_sent: str | None = None
    notify_email: bool = True
    notify_push: bool = True
    created_at: str = ""
    match_count: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SavedSearch":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            query=row.get("query") or "",
            filters=dict(row.get("filters") or {}),
            alert_enabled=bool(row.get("alert_enabled", False)),
            alert_frequency=row.get("alert_frequency") or "daily",
            last_alert_sent=row.get("last_alert_sent"),
            notify_email=bool(row.get("notify_email", True)),
            notify_push=bool(row.get("notify_push", True)),
            created_at=row.get("created_at") or "",
            match_count=int(row.get("match_count") or 0),
        )

    @property
    def item_id(self) -> str:
        return self.id


@dataclass(slots=True)
class RecommendationItem:
    id: str
    title: str
    price: float | None
    images: list[str]
    condition: str | None = None
    recommendation_score: float | None = None
    similarity_score: float | None = None
    view_count: int | None = None
    viewed_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RecommendationItem":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            price=_price(row.get("price")),
            images=list(row.get("images") or []),
            condition=row.get("condition"),
            recommendation_score=row.get("recommendation_score"),
            similarity_score=row.get("similarity_score"),
            view_count=row.get("view_count"),
            viewed_at=row.get("viewed_at"),
        )


@dataclass(slots=True)
class FollowedSeller:
    id: str
    username: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FollowedSeller":
        return cls(id=str(row["id"]), username=row.get("username"))


@dataclass(slots=True)
class SearchItem:
    id: str
    title: str
    price: float | None
    condition: str | None
    images: list[str]
    created_at: str
    seller_id: str | None = None
    seller_username: str | None = None
    seller_rating: float | None = None
    category_slug: str | None = None
    category_name: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SearchItem":
        seller = row.get("seller") or {}
        category = row.get("category") or {}
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            price=_price(row.get("price")),
            condition=row.get("condition"),
            images=list(row.get("images") or []),
            created_at=row.get("created_at") or "",
            seller_id=str(seller["id"]) if seller.get("id") is not None else None,
            seller_username=seller.get("username"),
            seller_rating=_price(seller.get("rating")),
            category_slug=category.get("slug"),
            category_name=category.get("name"),
        )

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> "SearchItem":
        return cls.from_row({**(hit.get("_source") or {}), "id": hit["_id"]})
