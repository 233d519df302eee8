"""Price history for an item: chart points, summary and a PNG chart."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.ticker import FuncFormatter

from trove.rpc.client import RpcClient
from trove.rpc.models import PriceHistoryPoint
from trove.utils.dates import format_short, now_in_tz

plt.switch_backend("Agg")

OUTPUT_DIR = Path(os.environ.get("CHART_OUTPUT_DIR", "artifacts/charts"))
NOW_LABEL = "Now"


@dataclass(slots=True)
class ChartPoint:
    date: datetime
    price: float
    label: str


@dataclass(slots=True)
class PriceSummary:
    points: list[ChartPoint]
    highest: float
    lowest: float
    change: float
    percent_change: float

    @property
    def dropped(self) -> bool:
        return self.change < 0


async def fetch_price_history(client: RpcClient, item_id: str) -> list[PriceHistoryPoint]:
    rows = await client.select(
        "price_history",
        filters={"item_id": f"eq.{item_id}"},
        order="changed_at.asc",
    )
    history = [PriceHistoryPoint.from_row(row) for row in rows]
    history.sort(key=lambda point: point.changed_at)
    return history


def summarize(
    history: Sequence[PriceHistoryPoint],
    current_price: float,
    *,
    now: datetime | None = None,
) -> PriceSummary:
    now = now or now_in_tz()
    if not history:
        point = ChartPoint(date=now, price=current_price, label=NOW_LABEL)
        return PriceSummary([point], current_price, current_price, 0.0, 0.0)

    first = history[0]
    points = [ChartPoint(first.changed_at, first.old_price, format_short(first.changed_at))]
    points.extend(ChartPoint(change.changed_at, change.new_price, format_short(change.changed_at)) for change in history)
    if not np.isclose(history[-1].new_price, current_price):
        points.append(ChartPoint(now, current_price, NOW_LABEL))

    prices = pd.Series([point.price for point in points], dtype=float)
    change = current_price - first.old_price
    percent = (change / first.old_price) * 100 if first.old_price else 0.0
    return PriceSummary(
        points=points,
        highest=float(prices.max()),
        lowest=float(prices.min()),
        change=round(change, 2),
        percent_change=round(percent, 2),
    )


def price_history_chart(summary: PriceSummary, item_id: str) -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame(
        {"date": [point.date for point in summary.points], "price": [point.price for point in summary.points]}
    )
    frame["date"] = pd.to_datetime(frame["date"], utc=True)
    frame = frame.sort_values("date")

    fig, ax = plt.subplots(figsize=(8, 3))
    ax.step(frame["date"], frame["price"], where="post", color="#4F46E5", marker="o")
    ax.set_ylabel("Price")
    ax.yaxis.set_major_formatter(FuncFormatter(lambda x, pos: f"${x:,.2f}"))
    ax.set_ylim(summary.lowest * 0.9, summary.highest * 1.1 or 1)
    ax.set_title("Price History")
    fig.autofmt_xdate()

    output_path = OUTPUT_DIR / f"{item_id}-price-history.png"
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
