import pendulum
import pytest

from trove.logic import price_history
from trove.logic.price_history import fetch_price_history, price_history_chart, summarize
from trove.rpc.models import PriceHistoryPoint

NOW = pendulum.datetime(2025, 3, 15, 12, tz="UTC")


def change(old, new, when):
    return PriceHistoryPoint(old_price=old, new_price=new, changed_at=pendulum.parse(when))


def test_no_history_is_a_single_current_point():
    summary = summarize([], 25.0, now=NOW)
    assert [(point.price, point.label) for point in summary.points] == [(25.0, "Now")]
    assert summary.highest == summary.lowest == 25.0
    assert summary.change == 0
    assert summary.percent_change == 0


def test_summary_tracks_extremes_and_change():
    history = [
        change(100.0, 80.0, "2025-01-01T00:00:00Z"),
        change(80.0, 90.0, "2025-02-01T00:00:00Z"),
    ]
    summary = summarize(history, 90.0, now=NOW)

    assert [(point.price, point.label) for point in summary.points] == [
        (100.0, "Jan 1, 2025"),
        (80.0, "Jan 1, 2025"),
        (90.0, "Feb 1, 2025"),
    ]
    assert summary.highest == 100.0
    assert summary.lowest == 80.0
    assert summary.change == -10.0
    assert summary.percent_change == -10.0
    assert summary.dropped


def test_current_price_differing_from_last_change_adds_now_point():
    history = [change(30.0, 45.0, "2025-01-10T00:00:00Z")]
    summary = summarize(history, 50.0, now=NOW)
    assert summary.points[-1].label == "Now"
    assert summary.points[-1].date == NOW
    assert summary.highest == 50.0
    assert summary.percent_change == pytest.approx(66.67)
    assert not summary.dropped


def test_zero_starting_price_reports_no_percent():
    summary = summarize([change(0.0, 5.0, "2025-01-10T00:00:00Z")], 5.0, now=NOW)
    assert summary.percent_change == 0


@pytest.mark.asyncio
async def test_fetch_filters_by_item_in_date_order(backend, client):
    backend.tables["price_history"].extend(
        [
            {"id": 2, "item_id": "item-1", "old_price": 80, "new_price": 90, "changed_at": "2025-02-01T00:00:00Z"},
            {"id": 1, "item_id": "item-1", "old_price": 100, "new_price": 80, "changed_at": "2025-01-01T00:00:00Z"},
            {"id": 3, "item_id": "item-2", "old_price": 5, "new_price": 4, "changed_at": "2025-01-05T00:00:00Z"},
        ]
    )
    history = await fetch_price_history(client, "item-1")
    assert [point.id for point in history] == ["1", "2"]
    assert history[0].old_price == 100.0


def test_chart_is_written(monkeypatch, tmp_path):
    monkeypatch.setattr(price_history, "OUTPUT_DIR", tmp_path / "charts")
    summary = summarize([change(100.0, 80.0, "2025-01-01T00:00:00Z")], 85.0, now=NOW)
    path = price_history_chart(summary, "item-1")
    assert path.exists()
    assert path.name == "item-1-price-history.png"
