"""Rebuild recommendation tables with the service-role key."""

from __future__ import annotations

import asyncio

from dotenv import load_dotenv

from trove.logic.recommendations import update_recommendations
from trove.rpc.session import create_admin_client_from_env


async def main() -> None:
    load_dotenv()
    client = create_admin_client_from_env()
    try:
        result = await update_recommendations(client)
    finally:
        await client.close()
    print(result or "Recommendations updated")


if __name__ == "__main__":
    asyncio.run(main())
