"""
Order Lifecycle Manager

Creates orders with their line items, moves orders through the status
workflow and records payments.

Status workflow:

    pending -> accepted -> preparing -> ready -> completed
       |          |            |          |
       +----------+------------+----------+--> canceled | refunded

Only the single next forward stage, or one of the two exits from a
non-terminal state, is accepted. Writes are guarded by the order's
``version`` column, so a concurrent update loses with a ConflictError
instead of silently overwriting.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from foodtruck.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from foodtruck.models import (
    BusinessAccount,
    Customer,
    LineItemStatus,
    Message,
    MessageChannel,
    MessageStatus,
    Order,
    OrderChannel,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    utcnow,
)
from foodtruck.services.notifications.base import BaseNotificationService
from foodtruck.services.payment.base import BasePaymentService

logger = logging.getLogger(__name__)

EMPTY_ORDER_MESSAGE = "Please select at least one item."
MAX_LINE_QUANTITY = 999

ORDER_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)
EXIT_STATUSES: tuple[OrderStatus, ...] = (OrderStatus.CANCELED, OrderStatus.REFUNDED)
TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELED, OrderStatus.REFUNDED})

# Milestone timestamp stamped when an order reaches a status
MILESTONE_FIELDS = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELED: "canceled_at",
    OrderStatus.REFUNDED: "refunded_at",
}

# Line item status that follows an order status
LINE_ITEM_STATUS_FOR = {
    OrderStatus.PREPARING: LineItemStatus.PREPARING,
    OrderStatus.READY: LineItemStatus.READY,
    OrderStatus.COMPLETED: LineItemStatus.SERVED,
    OrderStatus.CANCELED: LineItemStatus.CANCELED,
    OrderStatus.REFUNDED: LineItemStatus.CANCELED,
}


@dataclass
class LineItemRequest:
    """A requested line: product, how many, at what unit price."""
    product_id: str
    quantity: int
    unit_price: float
    special_instructions: Optional[str] = None

    @property
    def line_subtotal(self) -> float:
        return round(self.quantity * self.unit_price, 2)


# =============================================================================
# STATE MACHINE
# =============================================================================

def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """Next forward stage, or None once the order is terminal."""
    if current in TERMINAL_STATUSES:
        return None
    return ORDER_FLOW[ORDER_FLOW.index(current) + 1]


def allowed_transitions(current: OrderStatus) -> list[OrderStatus]:
    """Every status reachable from ``current`` in one step."""
    following = next_status(current)
    if following is None:
        return []
    return [following, *EXIT_STATUSES]


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if target not in allowed_transitions(current):
        raise InvalidTransitionError(current.value, target.value)


def apply_status(order: Order, target: OrderStatus, now: Optional[datetime] = None) -> None:
    """
    Move ``order`` to ``target`` and stamp the matching milestone.

    Does not check the transition; callers go through check_transition first.
    """
    now = now or utcnow()
    order.status = target

    field = MILESTONE_FIELDS.get(target)
    if field is not None:
        setattr(order, field, now)

    if target == OrderStatus.READY and order.accepted_at is not None:
        accepted_at = order.accepted_at
        if accepted_at.tzinfo is None:
            accepted_at = accepted_at.replace(tzinfo=now.tzinfo)
        order.prep_time_actual_seconds = max(0, int((now - accepted_at).total_seconds()))

    item_status = LINE_ITEM_STATUS_FOR.get(target)
    if item_status is not None:
        for item in order.line_items:
            item.status = item_status


# =============================================================================
# TOTALS
# =============================================================================

def calculate_order_totals(items: Iterable[LineItemRequest]) -> dict[str, float]:
    """
    Calculate order subtotal, tax, discount and total.

    Tax and discount are always zero for now, so the total equals the
    subtotal. The fields exist so they can be populated later.
    """
    subtotal = round(sum(item.quantity * item.unit_price for item in items), 2)
    tax = 0.0
    discount = 0.0
    return {
        "subtotal_amount": subtotal,
        "tax_amount": tax,
        "discount_amount": discount,
        "total_amount": round(subtotal - discount + tax, 2),
    }


def filter_requested_quantities(raw: Iterable[tuple[str, Any]]) -> list[tuple[str, int]]:
    """
    Keep only (product_id, quantity) pairs with a positive integer quantity.

    Blank, zero, negative and unparsable quantities are dropped, the way a
    menu form leaves untouched rows empty.
    """
    kept = []
    for product_id, value in raw:
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        try:
            quantity = int(value)
        except (TypeError, ValueError):
            continue
        if quantity != float(value) or quantity <= 0:
            continue
        kept.append((product_id, quantity))
    return kept


def _validate_items(items: list[LineItemRequest]) -> None:
    if not items:
        raise ValidationError(EMPTY_ORDER_MESSAGE, error="empty_order")
    for item in items:
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
            raise ValidationError(
                f"Quantity for product {item.product_id} must be a positive whole number"
            )
        if item.quantity > MAX_LINE_QUANTITY:
            raise ValidationError(
                f"Quantity for product {item.product_id} cannot exceed {MAX_LINE_QUANTITY}"
            )
        if item.unit_price is None or item.unit_price < 0:
            raise ValidationError(f"Unit price for product {item.product_id} cannot be negative")


# =============================================================================
# CREATE
# =============================================================================

async def create_order_with_line_items(
    db: AsyncSession,
    account_id: str,
    items: list[LineItemRequest],
    customer_id: Optional[str] = None,
    channel: OrderChannel = OrderChannel.WEB_FORM,
    location_id: Optional[str] = None,
    notes: Optional[str] = None,
    currency: str = "usd",
    prep_time_estimate_seconds: Optional[int] = None,
) -> Order:
    """
    Create an order and all of its line items in one transaction.

    Raises:
        ValidationError: if ``items`` is empty or holds a bad quantity/price.
            Nothing is written in that case.
    """
    _validate_items(items)

    totals = calculate_order_totals(items)
    now = utcnow()

    order = Order(
        account_id=account_id,
        customer_id=customer_id,
        location_id=location_id,
        channel=channel,
        status=OrderStatus.PENDING,
        placed_at=now,
        currency=currency,
        payment_status=PaymentStatus.UNPAID,
        notes=notes,
        prep_time_estimate_seconds=prep_time_estimate_seconds,
        **totals,
    )
    order.line_items = [
        OrderLineItem(
            account_id=account_id,
            product_id=item.product_id,
            position=position,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_subtotal=item.line_subtotal,
            status=LineItemStatus.PENDING,
            special_instructions=item.special_instructions,
        )
        for position, item in enumerate(items)
    ]

    db.add(order)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Order {order.id} created for account {account_id} "
        f"({len(items)} lines, total ${order.total_amount:.2f})"
    )
    return order


async def price_line_items_from_menu(
    db: AsyncSession,
    account_id: str,
    quantities: list[tuple[str, int]],
    special_instructions: Optional[dict[str, str]] = None,
) -> list[LineItemRequest]:
    """
    Build line item requests using the stored menu prices.

    Raises:
        ValidationError: if a product is unknown to the account or inactive.
    """
    if not quantities:
        return []

    product_ids = [product_id for product_id, _ in quantities]
    result = await db.execute(
        select(Product).where(
            Product.account_id == account_id,
            Product.id.in_(product_ids),
        )
    )
    products = {p.id: p for p in result.scalars().all()}
    special_instructions = special_instructions or {}

    items = []
    for product_id, quantity in quantities:
        product = products.get(product_id)
        if product is None or not product.is_active:
            raise ValidationError(f"Product {product_id} is not on the menu")
        items.append(
            LineItemRequest(
                product_id=product_id,
                quantity=quantity,
                unit_price=product.price,
                special_instructions=special_instructions.get(product_id),
            )
        )
    return items


# =============================================================================
# READ
# =============================================================================

async def get_order(db: AsyncSession, account_id: str, order_id: str) -> Order:
    """Fetch one order of an account (line items included)."""
    result = await db.execute(
        select(Order).where(Order.account_id == account_id, Order.id == order_id)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


async def list_orders(
    db: AsyncSession,
    account_id: str,
    status: Optional[OrderStatus] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[Order]:
    """Orders of an account, most recently placed first."""
    query = (
        select(Order)
        .where(Order.account_id == account_id)
        .order_by(Order.placed_at.desc(), Order.id)
    )
    if status is not None:
        query = query.where(Order.status == status)
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_account_line_items(db: AsyncSession, account_id: str) -> list[OrderLineItem]:
    """
    Every line item of an account across all of its orders.

    Ordered by order placement time, then position within the order, so
    the scan order is stable.
    """
    result = await db.execute(
        select(OrderLineItem)
        .join(Order, OrderLineItem.order_id == Order.id)
        .where(OrderLineItem.account_id == account_id)
        .order_by(Order.placed_at, Order.id, OrderLineItem.position)
    )
    return list(result.scalars().all())


# =============================================================================
# STATUS
# =============================================================================

async def _commit_guarded(db: AsyncSession, order_id: str) -> None:
    # Rollback expires the order, so only the id captured beforehand is used
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning(f"Order {order_id} was modified concurrently")
        raise ConflictError(f"Order {order_id} was modified by someone else. Reload and try again.")


def _ensure_not_refunding(order: Order) -> None:
    if order.payment_status == PaymentStatus.REFUND_PENDING:
        raise ConflictError(f"A refund of order {order.id} is in progress. Try again shortly.")


async def _refund_card_payment(
    db: AsyncSession,
    order: Order,
    payment_service: Optional[BasePaymentService],
) -> str:
    """
    Refund the card charge of ``order`` and return the refund id.

    The order is first committed as refund_pending, so a writer that got
    there first wins with a ConflictError before any money moves, and
    later writers see the pending refund. A failed refund puts the order
    back to paid.
    """
    if payment_service is None:
        raise PaymentError("No payment service available to refund this order")

    order_id = order.id
    order.payment_status = PaymentStatus.REFUND_PENDING
    await _commit_guarded(db, order_id)

    refund = await payment_service.refund_payment(
        order.payment_intent_id,
        amount=order.total_amount,
        reason="requested_by_customer",
    )
    if not refund.success:
        logger.error(f"Refund failed for order {order_id}: {refund.error_message}")
        order.payment_status = PaymentStatus.PAID
        await _commit_guarded(db, order_id)
        raise PaymentError(refund.error_message or "Refund failed", error="refund_failed")

    order.refund_id = refund.refund_id
    return refund.refund_id


async def advance_order_status(
    db: AsyncSession,
    account_id: str,
    order_id: str,
    target: Optional[OrderStatus] = None,
    payment_service: Optional[BasePaymentService] = None,
    notification_service: Optional[BaseNotificationService] = None,
) -> Order:
    """
    Move an order to ``target`` (or to its next stage when omitted).

    Side effects:
        - refunded: card payments are refunded through ``payment_service``
          and paid orders get payment_status=refunded
        - ready: the customer is notified through ``notification_service``

    Raises:
        NotFoundError: unknown order
        InvalidTransitionError: target not reachable from the current status
        PaymentError: card refund failed (order left unchanged)
        ConflictError: order changed concurrently, or a refund is in progress
    """
    order = await get_order(db, account_id, order_id)
    _ensure_not_refunding(order)
    current = order.status

    if target is None:
        target = next_status(current)
        if target is None:
            raise InvalidTransitionError(current.value, "next")

    check_transition(current, target)

    refund_id = None
    if target == OrderStatus.REFUNDED and order.payment_status == PaymentStatus.PAID:
        if order.payment_method == PaymentMethod.CARD and order.payment_intent_id:
            refund_id = await _refund_card_payment(db, order, payment_service)
        order.payment_status = PaymentStatus.REFUNDED

    apply_status(order, target)
    try:
        await _commit_guarded(db, order_id)
    except ConflictError:
        if refund_id:
            logger.error(f"Refund {refund_id} was issued for order {order_id} but its status update conflicted")
        raise

    logger.info(f"Order {order.id} moved {current.value} -> {target.value}")

    if target == OrderStatus.READY and notification_service is not None:
        await notify_order_ready(db, order, notification_service)

    return order


async def notify_order_ready(
    db: AsyncSession,
    order: Order,
    notification_service: BaseNotificationService,
) -> Optional[Message]:
    """
    Tell the customer their order is ready and record the message.

    SMS when the customer left a phone number, email otherwise. Delivery
    failures are recorded on the message and never raised.
    """
    if not order.customer_id:
        return None

    customer = await db.get(Customer, order.customer_id)
    if customer is None or not (customer.phone or customer.email):
        return None

    account = await db.get(BusinessAccount, order.account_id)
    notice = await notification_service.send_order_ready(
        truck_name=account.name if account else "the truck",
        total_amount=order.total_amount,
        customer_name=customer.name,
        phone=customer.phone,
        email=customer.email,
    )
    if notice is None:
        return None

    channel = MessageChannel(notice.channel)
    result = notice.result
    now = utcnow()
    message = Message(
        account_id=order.account_id,
        customer_id=customer.id,
        order_id=order.id,
        channel=channel,
        purpose="order_update",
        body=notice.body,
        status=MessageStatus.SENT if result.success else MessageStatus.FAILED,
        provider_message_id=result.message_id,
        error_message=result.error_message,
        sent_at=now if result.success else None,
        failed_at=None if result.success else now,
    )
    db.add(message)
    await db.commit()

    if result.success:
        logger.info(f"Ready notice for order {order.id} sent via {channel.value}")
    else:
        logger.warning(
            f"Ready notice for order {order.id} failed via {channel.value}: {result.error_message}"
        )
    return message


# =============================================================================
# PAYMENT
# =============================================================================

async def record_payment(
    db: AsyncSession,
    account_id: str,
    order_id: str,
    method: PaymentMethod,
    payment_service: BasePaymentService,
) -> Order:
    """
    Mark an order as paid.

    Card payments are charged through ``payment_service``; every other
    method is recorded as collected at the truck.

    Raises:
        ValidationError: order already paid, or canceled/refunded
        PaymentError: card charge declined
        ConflictError: order changed concurrently, or a refund is in progress
    """
    order = await get_order(db, account_id, order_id)
    _ensure_not_refunding(order)

    if order.status in (OrderStatus.CANCELED, OrderStatus.REFUNDED):
        raise ValidationError(f"Order {order.id} is {order.status.value} and cannot be paid")
    if order.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
        raise ValidationError(f"Order {order.id} is already {order.payment_status.value}")

    if method == PaymentMethod.CARD:
        result = await payment_service.process_payment(
            amount=order.total_amount,
            currency=order.currency or "usd",
            description=f"Order {order.id}",
            metadata={"order_id": order.id, "account_id": account_id},
        )
        if not result.success:
            logger.warning(f"Card payment declined for order {order.id}: {result.error_code}")
            raise PaymentError(
                result.error_message or "Payment failed",
                error=result.error_code or "payment_failed",
            )
        order.payment_intent_id = result.payment_intent_id

    order.payment_method = method
    order.payment_status = PaymentStatus.PAID
    await _commit_guarded(db, order_id)

    logger.info(f"Order {order.id} paid by {method.value} (${order.total_amount:.2f})")
    return order
