"""Account-scoped records: product edits, stock movements, supplier purchases and the message log."""

from datetime import datetime, timedelta, timezone

import pytest

from foodtruck.core.exceptions import NotFoundError, ValidationError
from foodtruck.models import (
    BusinessAccount,
    InventoryEventType,
    Message,
    MessageChannel,
    MessageStatus,
    Product,
    SupplierTransactionType,
)
from foodtruck.services import catalog


# =============================================================================
# PRODUCTS
# =============================================================================

@pytest.mark.parametrize("field", ["name", "is_active", "menu_type", "stock_unit"])
async def test_required_product_fields_cannot_be_cleared(db, account, products, field):
    with pytest.raises(ValidationError) as excinfo:
        await catalog.update_product(db, account.id, "p-taco", {field: None})

    assert field in excinfo.value.detail
    product = await db.get(Product, "p-taco")
    assert product.name == "Carnitas Taco"
    assert product.is_active is True


async def test_optional_product_fields_can_be_cleared(db, account, products):
    await catalog.update_product(db, account.id, "p-taco", {"category": "Specials", "cost": 1.2})
    product = await catalog.update_product(db, account.id, "p-taco", {"category": None, "cost": None})

    assert product.category is None
    assert product.cost is None


# =============================================================================
# INVENTORY
# =============================================================================

async def test_inventory_events_move_current_stock(db, account, products):
    event, product = await catalog.record_inventory_event(
        db, account.id, "p-taco", type=InventoryEventType.PURCHASE, quantity_delta=40, unit_cost=1.1
    )
    assert product.current_stock == 40
    assert event.unit_cost == 1.1

    _, product = await catalog.record_inventory_event(
        db, account.id, "p-taco", type=InventoryEventType.WASTE, quantity_delta=-3, reason="dropped tray"
    )
    assert product.current_stock == 37

    events = await catalog.list_inventory_events(db, account.id, product_id="p-taco")
    assert sorted(e.quantity_delta for e in events) == [-3, 40]
    assert await catalog.list_inventory_events(db, account.id, product_id="p-chips") == []


async def test_inventory_event_starts_from_existing_stock(db, account, products):
    await catalog.update_product(db, account.id, "p-chips", {"current_stock": 10})

    _, product = await catalog.record_inventory_event(
        db, account.id, "p-chips", type=InventoryEventType.SALE, quantity_delta=-4
    )
    assert product.current_stock == 6


async def test_zero_inventory_change_is_rejected(db, account, products):
    with pytest.raises(ValidationError):
        await catalog.record_inventory_event(
            db, account.id, "p-taco", type=InventoryEventType.ADJUSTMENT, quantity_delta=0
        )
    assert await catalog.list_inventory_events(db, account.id) == []


async def test_inventory_event_for_another_accounts_product_is_not_found(db, account, products):
    db.add(BusinessAccount(id="acct-2", name="Waffle Wagon"))
    await db.commit()

    with pytest.raises(NotFoundError):
        await catalog.record_inventory_event(
            db, "acct-2", "p-taco", type=InventoryEventType.PURCHASE, quantity_delta=5
        )


# =============================================================================
# SUPPLIERS
# =============================================================================

async def test_supplier_purchase_links_to_inventory_event(db, account, products):
    earlier = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
    await catalog.create_supplier_transaction(
        db, account.id, supplier_name="Tortilla Co", total_amount=18.0, transaction_date=earlier
    )
    purchase = await catalog.create_supplier_transaction(
        db,
        account.id,
        supplier_name="Restaurant Depot",
        total_amount=182.4,
        currency="usd",
        transaction_date=earlier + timedelta(days=2),
    )
    assert purchase.transaction_type == SupplierTransactionType.INVENTORY

    event, _ = await catalog.record_inventory_event(
        db,
        account.id,
        "p-chips",
        type=InventoryEventType.PURCHASE,
        quantity_delta=24,
        supplier_transaction_id=purchase.id,
    )
    assert event.supplier_transaction_id == purchase.id

    listed = await catalog.list_supplier_transactions(db, account.id)
    assert [t.supplier_name for t in listed] == ["Restaurant Depot", "Tortilla Co"]


async def test_unknown_supplier_transaction_is_not_found(db, account, products):
    with pytest.raises(NotFoundError):
        await catalog.record_inventory_event(
            db,
            account.id,
            "p-chips",
            type=InventoryEventType.PURCHASE,
            quantity_delta=24,
            supplier_transaction_id="missing",
        )


@pytest.mark.parametrize("fields", [
    {"supplier_name": "  ", "total_amount": 10.0},
    {"supplier_name": "Restaurant Depot", "total_amount": -1.0},
])
async def test_invalid_supplier_purchase_is_rejected(db, account, fields):
    with pytest.raises(ValidationError):
        await catalog.create_supplier_transaction(db, account.id, **fields)


# =============================================================================
# MESSAGES
# =============================================================================

async def test_message_log_filters_by_customer(db, account):
    db.add_all([
        Message(account_id=account.id, customer_id="c-1", channel=MessageChannel.SMS,
                body="Ready!", status=MessageStatus.SENT),
        Message(account_id=account.id, customer_id="c-2", channel=MessageChannel.EMAIL,
                body="Ready!", status=MessageStatus.FAILED),
    ])
    await db.commit()

    assert len(await catalog.list_messages(db, account.id)) == 2
    only_first = await catalog.list_messages(db, account.id, customer_id="c-1")
    assert [m.channel for m in only_first] == [MessageChannel.SMS]
    assert await catalog.list_messages(db, "acct-other") == []
