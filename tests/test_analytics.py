"""Dashboard summaries and top-product ranking."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from foodtruck.services.analytics import build_dashboard, rank_top_products, summarize_orders
from foodtruck.services.orders import LineItemRequest, create_order_with_line_items

NEW_YORK = ZoneInfo("America/New_York")
NOW = datetime(2024, 6, 15, 14, 0, tzinfo=NEW_YORK)


def order(placed_at, total):
    return SimpleNamespace(placed_at=placed_at, total_amount=total)


def line(product_id, quantity, subtotal=0.0):
    return SimpleNamespace(product_id=product_id, quantity=quantity, line_subtotal=subtotal)


def test_today_week_and_all_time_windows():
    today = NOW.replace(hour=0, minute=0)
    orders = [
        order(today.replace(hour=9), 10),
        order(today.replace(hour=23, minute=59), 5),
        order(NOW - timedelta(days=3), 7),
        order(NOW - timedelta(days=10), 20),
    ]

    summaries = summarize_orders(orders, now=NOW, tz=NEW_YORK)

    assert (summaries.today.count, summaries.today.revenue) == (2, 15)
    assert (summaries.last_7_days.count, summaries.last_7_days.revenue) == (3, 22)
    assert (summaries.all_time.count, summaries.all_time.revenue) == (4, 42)


def test_week_window_starts_at_local_midnight_six_days_back():
    six_days_back = datetime(2024, 6, 9, 0, 0, tzinfo=NEW_YORK)
    orders = [
        order(six_days_back, 1),
        order(six_days_back - timedelta(minutes=1), 2),
    ]

    summaries = summarize_orders(orders, now=NOW, tz=NEW_YORK)

    assert summaries.last_7_days.count == 1
    assert summaries.last_7_days.revenue == 1


def test_day_boundary_uses_business_time_zone():
    # 01:30 UTC on the 15th is still the evening of the 14th in New York
    late_last_night = datetime(2024, 6, 15, 1, 30, tzinfo=timezone.utc)
    naive_utc_morning = datetime(2024, 6, 15, 13, 0)

    summaries = summarize_orders(
        [order(late_last_night, 8), order(naive_utc_morning, 4)], now=NOW, tz=NEW_YORK
    )

    assert summaries.today.count == 1
    assert summaries.today.revenue == 4
    assert summaries.last_7_days.count == 2


def test_missing_totals_count_as_zero_and_revenue_is_rounded():
    summaries = summarize_orders(
        [order(NOW, None), order(NOW, 0.1), order(NOW, 0.2)], now=NOW, tz=NEW_YORK
    )
    assert summaries.today.count == 3
    assert summaries.today.revenue == 0.3


def test_empty_order_list():
    summaries = summarize_orders([], now=NOW, tz=NEW_YORK)
    assert summaries.to_dict() == {
        "today": {"count": 0, "revenue": 0.0},
        "last_7_days": {"count": 0, "revenue": 0.0},
        "all_time": {"count": 0, "revenue": 0.0},
    }


def test_top_products_tie_goes_to_first_seen_product():
    ranked = rank_top_products([line("productA", 3), line("productB", 5), line("productA", 2)])

    assert [(p.product_id, p.quantity) for p in ranked] == [("productA", 5), ("productB", 5)]


def test_top_products_keeps_five_by_quantity():
    items = [line(f"p{n}", n, subtotal=n * 2.0) for n in range(1, 8)]

    ranked = rank_top_products(items, product_names={"p7": "Horchata"})

    assert [p.product_id for p in ranked] == ["p7", "p6", "p5", "p4", "p3"]
    assert ranked[0].name == "Horchata"
    assert ranked[0].revenue == 14.0
    assert ranked[1].name is None


async def test_dashboard_reads_orders_and_line_items(db, account, products):
    await create_order_with_line_items(db, account.id, [
        LineItemRequest("p-taco", 3, 4.5),
        LineItemRequest("p-chips", 5, 3.25),
    ])
    await create_order_with_line_items(db, account.id, [LineItemRequest("p-taco", 2, 4.5)])

    dashboard = await build_dashboard(db, account.id, tz=NEW_YORK)

    assert dashboard["summaries"].all_time.count == 2
    assert dashboard["summaries"].today.revenue == 38.75
    top = [(p.product_id, p.quantity, p.name) for p in dashboard["top_products"]]
    assert top == [("p-taco", 5, "Carnitas Taco"), ("p-chips", 5, "Chips & Salsa")]
    assert len(dashboard["recent_orders"]) == 2
