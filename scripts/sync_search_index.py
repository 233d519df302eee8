"""Push active items into the search index and report its status."""

from __future__ import annotations

import asyncio

from dotenv import load_dotenv

from trove.logic.search import recheck_search_status, sync_search_index
from trove.rpc.session import create_admin_client_from_env


async def main() -> None:
    load_dotenv()
    client = create_admin_client_from_env()
    try:
        result = await sync_search_index(client)
        status = await recheck_search_status(client)
    finally:
        await client.close()
    print(result or "Search index synced")
    print(f"available={status.available} last_sync={status.last_sync} error={status.error}")


if __name__ == "__main__":
    asyncio.run(main())
