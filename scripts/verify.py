"""
Excel Verification Script

Verifies data integrity of an account's Excel export.
Run from project root: python scripts/verify.py <account_id> [--data-dir DIR]
"""

import argparse
import sys
from datetime import datetime

from foodtruck.core.config import get_settings
from foodtruck.services.excel_manager import ExcelManager, LINE_ITEMS_SHEET, ORDERS_SHEET


def verify_excel(manager: ExcelManager, account_id: str) -> bool:
    """Check the workbook: required columns, unique ids, totals match lines."""
    path = manager.workbook_path(account_id)

    print("=" * 60)
    print("EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {path}")
    print("=" * 60)

    if not path.exists():
        print("\nExcel file not found!")
        print("   Queue an export first: POST /api/reports/orders-export")
        return False

    sheets = manager.read_account_export(account_id)
    orders = sheets[ORDERS_SHEET]
    items = sheets[LINE_ITEMS_SHEET]
    ok = True

    print("\nSTATISTICS:")
    print(f"   Orders: {len(orders)}")
    print(f"   Line items: {len(items)}")

    for name, df, required in (
        (ORDERS_SHEET, orders, ExcelManager.ORDER_COLUMNS),
        (LINE_ITEMS_SHEET, items, ExcelManager.LINE_ITEM_COLUMNS),
    ):
        missing = [col for col in required if col not in df.columns]
        if missing:
            print(f"\nMissing columns in '{name}': {missing}")
            ok = False

    duplicates = orders["order_id"].duplicated().sum()
    if duplicates > 0:
        print(f"\n{duplicates} duplicate order IDs found!")
        ok = False
    else:
        print("No duplicate order IDs")

    orphans = set(items["order_id"]) - set(orders["order_id"])
    if orphans:
        print(f"\n{len(orphans)} line items reference unknown orders")
        ok = False

    line_totals = items.groupby("order_id")["line_subtotal"].sum().round(2)
    mismatched = [
        row.order_id
        for row in orders.itertuples()
        if round(row.subtotal_amount, 2) != line_totals.get(row.order_id, 0.0)
    ]
    if mismatched:
        print(f"\n{len(mismatched)} orders whose subtotal differs from their lines")
        ok = False
    else:
        print("Order subtotals match their line items")

    if len(orders) > 0:
        print("\nREVENUE:")
        print(f"   Total: ${orders['total_amount'].sum():.2f}")
        print(f"   Average: ${orders['total_amount'].mean():.2f}")

        print("\nRECENT ORDERS:")
        print("-" * 60)
        cols = ["order_id", "placed_at", "status", "total_amount"]
        print(orders.sort_values("placed_at")[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION PASSED" if ok else "VERIFICATION FAILED")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify an account's Excel export")
    parser.add_argument("account_id")
    parser.add_argument("--data-dir", help="Export root (defaults to DATA_DIRECTORY)")
    args = parser.parse_args()

    manager = ExcelManager(args.data_dir or get_settings().data_directory)
    sys.exit(0 if verify_excel(manager, args.account_id) else 1)
