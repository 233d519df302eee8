"""Review submission forms for items and sellers."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, ClassVar

from trove.rpc.client import RpcClient, RpcError
from trove.rpc.session import UserSession

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewForm:
    submit_function: ClassVar[str]
    success_message: ClassVar[str] = "Review submitted successfully!"
    failure_message: ClassVar[str] = "Failed to submit review. Please try again."

    def __init__(
        self,
        client: RpcClient,
        session: UserSession,
        *,
        on_submitted: Callable[[], Any] | None = None,
    ) -> None:
        self.client = client
        self.session = session
        self.on_submitted = on_submitted
        self.rating = 0
        self.text = ""
        self.loading = False
        self.error: str | None = None
        self.success: str | None = None

    def params(self) -> dict[str, Any]:
        raise NotImplementedError

    async def submit(self) -> bool:
        if not self.session.is_authenticated:
            self.error = "You must be logged in to submit a review."
            return False
        if not MIN_RATING <= self.rating <= MAX_RATING:
            self.error = "Please select a rating."
            return False
        self.loading = True
        self.error = None
        self.success = None
        try:
            await self.client.rpc(self.submit_function, self.params())
        except RpcError as exc:
            logger.error("Error submitting review: %s", exc)
            self.error = exc.message or self.failure_message
            return False
        finally:
            self.loading = False
        self.success = self.success_message
        self.rating = 0
        self.text = ""
        if self.on_submitted:
            result = self.on_submitted()
            if inspect.isawaitable(result):
                await result
        return True


class ItemReviewForm(ReviewForm):
    submit_function = "submit_item_review"

    def __init__(self, client: RpcClient, session: UserSession, item_id: str, **kwargs: Any) -> None:
        super().__init__(client, session, **kwargs)
        self.item_id = item_id

    def params(self) -> dict[str, Any]:
        return {"p_item_id": self.item_id, "p_rating": self.rating, "p_review_text": self.text}


class SellerReviewForm(ReviewForm):
    submit_function = "submit_seller_review"
    success_message = "Seller review submitted successfully!"

    def __init__(
        self,
        client: RpcClient,
        session: UserSession,
        seller_user_id: str,
        transaction_id: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(client, session, **kwargs)
        self.seller_user_id = seller_user_id
        self.transaction_id = transaction_id

    def params(self) -> dict[str, Any]:
        return {
            "p_transaction_id": self.transaction_id,
            "p_seller_user_id": self.seller_user_id,
            "p_rating": self.rating,
            "p_review_comment": self.text,
        }
