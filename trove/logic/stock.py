"""Item stock status and the seller-only status editor."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from trove.rpc.client import RpcClient, RpcError

logger = logging.getLogger(__name__)


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    StockStatus.IN_STOCK: "In Stock",
    StockStatus.LOW_STOCK: "Low Stock",
    StockStatus.OUT_OF_STOCK: "Out of Stock",
}


class StockStatusEditor:
    def __init__(
        self,
        client: RpcClient,
        item_id: str,
        current_status: str,
        *,
        is_seller: bool,
        on_update: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.item_id = item_id
        self.status = current_status
        self.is_seller = is_seller
        self.on_update = on_update
        self.loading = False
        self.error = ""

    async def update(self, new_status: str) -> bool:
        self.error = ""
        if not self.is_seller:
            self.error = "Only the seller can change the stock status"
            return False
        try:
            status = StockStatus(new_status)
        except ValueError:
            self.error = f"Unknown stock status: {new_status}"
            return False
        self.loading = True
        try:
            await self.client.rpc(
                "update_item_stock_status",
                {"item_id": self.item_id, "new_stock_status": status.value},
            )
        except RpcError as exc:
            logger.error("Error updating stock status for %s: %s", self.item_id, exc)
            self.error = "Failed to update stock status"
            return False
        finally:
            self.loading = False
        self.status = status.value
        if self.on_update:
            self.on_update(status.value)
        return True
