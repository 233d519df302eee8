"""Scheduled processing of price-drop, restock and saved-search alerts."""

from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv

from trove.rpc.client import RpcClient, RpcError
from trove.rpc.session import create_admin_client_from_env

logger = logging.getLogger(__name__)

NOTIFICATION_TASKS = (
    ("process_price_drop_notifications", "Price drop notifications processed"),
    ("process_stock_notifications", "Stock notifications processed"),
    ("process_saved_search_alerts", "Saved search alerts processed"),
)


async def run_notifications(client: RpcClient | None = None) -> dict[str, object]:
    owns_client = client is None
    if owns_client:
        load_dotenv()
        client = create_admin_client_from_env()
    try:
        for function, done_message in NOTIFICATION_TASKS:
            await client.rpc(function)
            logger.info(done_message)
    except RpcError as exc:
        logger.error("Error processing notification tasks: %s", exc)
        return {"success": False, "error": exc.message}
    finally:
        if owns_client:
            await client.close()
    return {"success": True, "message": "All notification tasks processed successfully"}


if __name__ == "__main__":
    asyncio.run(run_notifications())
