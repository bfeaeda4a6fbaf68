"""Excel exports: row flattening, the locked workbook and the Celery task."""

import pytest

from foodtruck.services.excel_manager import LINE_ITEMS_SHEET, ORDERS_SHEET, ExcelManager
from foodtruck.services.orders import LineItemRequest, create_order_with_line_items, list_orders
from foodtruck.tasks import export_account_orders


@pytest.fixture
def manager(tmp_path) -> ExcelManager:
    return ExcelManager(tmp_path / "exports", lock_timeout=2)


@pytest.fixture
async def orders(db, account, products):
    await create_order_with_line_items(
        db,
        account.id,
        [LineItemRequest("p-taco", 2, 4.5), LineItemRequest("p-chips", 1, 3.25, "extra salsa")],
    )
    await create_order_with_line_items(db, account.id, [LineItemRequest("p-burrito", 1, 10.99)])
    return await list_orders(db, account.id)


async def test_serialize_orders_flattens_to_plain_values(orders):
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)

    assert len(order_rows) == 2
    assert len(line_item_rows) == 3
    assert set(order_rows[0]) == set(ExcelManager.ORDER_COLUMNS)
    assert all(row["status"] == "pending" for row in order_rows)
    assert all(isinstance(row["placed_at"], str) for row in order_rows)

    taco_line = next(row for row in line_item_rows if row["product_id"] == "p-taco")
    assert taco_line["line_subtotal"] == 9.0
    assert taco_line["status"] == "pending"
    chips_line = next(row for row in line_item_rows if row["product_id"] == "p-chips")
    assert chips_line["special_instructions"] == "extra salsa"


async def test_export_writes_both_sheets(manager, orders, account, tmp_path):
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)

    result = manager.export_account_orders(account.id, order_rows, line_item_rows)
    assert result["success"] is True
    assert result["orders"] == 2
    assert manager.workbook_path(account.id).exists()
    assert tmp_path / "exports" in manager.workbook_path(account.id).parents

    sheets = manager.read_account_export(account.id)
    assert list(sheets[ORDERS_SHEET].columns) == ExcelManager.ORDER_COLUMNS
    assert list(sheets[LINE_ITEMS_SHEET].columns) == ExcelManager.LINE_ITEM_COLUMNS
    assert sorted(sheets[ORDERS_SHEET]["total_amount"]) == [10.99, 12.25]


async def test_export_replaces_previous_snapshot(manager, orders, account):
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)
    manager.export_account_orders(account.id, order_rows, line_item_rows)
    manager.export_account_orders(account.id, order_rows[:1], [])

    sheets = manager.read_account_export(account.id)
    assert len(sheets[ORDERS_SHEET]) == 1
    assert len(sheets[LINE_ITEMS_SHEET]) == 0


def test_read_without_export_gives_empty_frames(manager):
    sheets = manager.read_account_export("never-exported")
    assert sheets[ORDERS_SHEET].empty
    assert list(sheets[LINE_ITEMS_SHEET].columns) == ExcelManager.LINE_ITEM_COLUMNS


async def test_clear_account(manager, orders, account):
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)
    manager.export_account_orders(account.id, order_rows, line_item_rows)

    assert manager.clear_account(account.id) is True
    assert not manager.workbook_path(account.id).exists()
    assert manager.clear_account(account.id) is False


async def test_export_task_writes_to_the_given_directory(orders, account, tmp_path):
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)
    data_directory = str(tmp_path / "task-exports")

    result = export_account_orders.delay(account.id, order_rows, line_item_rows, data_directory, 2).get()
    assert result["success"] is True
    assert result["line_items"] == 3
    assert "processing_time_seconds" in result
    assert ExcelManager(data_directory).workbook_path(account.id).exists()
