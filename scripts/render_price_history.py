"""Render a price history chart for one item."""

from __future__ import annotations

import asyncio
import sys

from dotenv import load_dotenv

from trove.logic.price_history import fetch_price_history, price_history_chart, summarize
from trove.rpc.session import create_client_from_env


async def main(item_id: str, current_price: float) -> None:
    load_dotenv()
    client = create_client_from_env()
    try:
        history = await fetch_price_history(client, item_id)
    finally:
        await client.close()
    summary = summarize(history, current_price)
    path = price_history_chart(summary, item_id)
    print(f"{len(history)} changes, {summary.percent_change:+.2f}% overall")
    print("Chart written to", path)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        raise SystemExit("usage: render_price_history.py ITEM_ID CURRENT_PRICE")
    asyncio.run(main(sys.argv[1], float(sys.argv[2])))
