"""
Dashboard aggregations.

Pure folds over orders and line items already loaded in memory, plus the
async helper that loads them for an account.

Day boundaries are local midnight in the business time zone. "Last 7
days" covers today and the six calendar days before it.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foodtruck.models import Product
from foodtruck.services.orders import list_account_line_items, list_orders

logger = logging.getLogger(__name__)

TRAILING_DAYS = 7


@dataclass
class Summary:
    count: int = 0
    revenue: float = 0.0

    def add(self, amount: float) -> None:
        self.count += 1
        self.revenue = round(self.revenue + amount, 2)


@dataclass
class OrderSummaries:
    today: Summary = field(default_factory=Summary)
    last_7_days: Summary = field(default_factory=Summary)
    all_time: Summary = field(default_factory=Summary)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return asdict(self)


@dataclass
class ProductSales:
    product_id: str
    quantity: int = 0
    revenue: float = 0.0
    name: Optional[str] = None


def to_local(moment: datetime, tz: tzinfo) -> datetime:
    """Convert to ``tz``. Naive datetimes are read as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def summarize_orders(
    orders: Iterable[Any],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> OrderSummaries:
    """
    Count orders and sum revenue for today, the last 7 days and all time.

    Args:
        orders: objects with ``placed_at`` and ``total_amount``
        now: reference moment
        tz: business time zone (defaults to the zone of ``now``, else UTC)
    """
    tz = tz or now.tzinfo or timezone.utc
    today = to_local(now, tz).date()
    week_start = today - timedelta(days=TRAILING_DAYS - 1)

    summaries = OrderSummaries()
    for order in orders:
        total = order.total_amount or 0.0
        summaries.all_time.add(total)

        if order.placed_at is None:
            continue
        placed_on = to_local(order.placed_at, tz).date()

        if week_start <= placed_on <= today:
            summaries.last_7_days.add(total)
        if placed_on == today:
            summaries.today.add(total)

    return summaries


def rank_top_products(
    line_items: Iterable[Any],
    limit: int = 5,
    product_names: Optional[dict[str, str]] = None,
) -> list[ProductSales]:
    """
    Rank products by total quantity sold, highest first.

    Ties keep the order in which each product first appears in
    ``line_items`` (the sort is stable over first-appearance order).
    """
    product_names = product_names or {}
    totals: dict[str, ProductSales] = {}

    for item in line_items:
        sales = totals.get(item.product_id)
        if sales is None:
            sales = ProductSales(
                product_id=item.product_id,
                name=product_names.get(item.product_id),
            )
            totals[item.product_id] = sales
        sales.quantity += item.quantity or 0
        sales.revenue = round(sales.revenue + (item.line_subtotal or 0.0), 2)

    ranked = sorted(totals.values(), key=lambda s: s.quantity, reverse=True)
    return ranked[:limit]


async def build_dashboard(
    db: AsyncSession,
    account_id: str,
    tz: tzinfo,
    top_products_limit: int = 5,
    recent_orders_limit: int = 10,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Load an account's orders and line items and fold them into dashboard numbers."""
    now = now or datetime.now(timezone.utc)

    orders = await list_orders(db, account_id)
    line_items = await list_account_line_items(db, account_id)

    result = await db.execute(
        select(Product.id, Product.name).where(Product.account_id == account_id)
    )
    product_names = {row.id: row.name for row in result}

    summaries = summarize_orders(orders, now=now, tz=tz)
    top_products = rank_top_products(line_items, limit=top_products_limit, product_names=product_names)

    logger.debug(
        f"Dashboard for {account_id}: {summaries.all_time.count} orders, "
        f"{len(line_items)} line items"
    )

    return {
        "account_id": account_id,
        "generated_at": now,
        "summaries": summaries,
        "top_products": top_products,
        # list_orders already returns newest first
        "recent_orders": orders[:recent_orders_limit],
    }
