"""
Excel File Manager with Concurrency Control

Writes an account's orders and line items to
``<data_directory>/<account_id>/orders.xlsx`` (sheets ``orders`` and
``line_items``). A file lock per workbook keeps two export workers from
writing the same file at once.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable
from pathlib import Path

import pandas as pd
from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)

WORKBOOK_NAME = "orders.xlsx"
ORDERS_SHEET = "orders"
LINE_ITEMS_SHEET = "line_items"


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def _plain(value: Any) -> Any:
    """Enum members become their value, datetimes ISO strings."""
    value = getattr(value, "value", value)
    return _iso(value)


class ExcelManager:
    """
    Per-account Excel workbook exporter rooted at ``data_directory``.

    Attributes:
        data_directory: Folder holding one sub-folder per account
        lock_timeout: Seconds to wait for another writer to release a workbook
    """

    ORDER_COLUMNS = [
        "order_id",
        "placed_at",
        "status",
        "channel",
        "customer_id",
        "location_id",
        "subtotal_amount",
        "tax_amount",
        "discount_amount",
        "total_amount",
        "currency",
        "payment_status",
        "payment_method",
        "accepted_at",
        "ready_at",
        "completed_at",
        "canceled_at",
        "refunded_at",
        "prep_time_actual_seconds",
        "notes",
    ]

    LINE_ITEM_COLUMNS = [
        "order_id",
        "line_item_id",
        "position",
        "product_id",
        "quantity",
        "unit_price",
        "line_subtotal",
        "status",
        "special_instructions",
    ]

    def __init__(self, data_directory, lock_timeout: float = 10.0):
        self.data_directory = Path(data_directory)
        self.lock_timeout = lock_timeout

    def account_dir(self, account_id: str) -> Path:
        return self.data_directory / account_id

    def workbook_path(self, account_id: str) -> Path:
        return self.account_dir(account_id) / WORKBOOK_NAME

    def _ensure_account_dir(self, account_id: str) -> Path:
        """Create the account's data directory if needed."""
        directory = self.account_dir(account_id)
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {directory}")
        return directory

    @classmethod
    def serialize_orders(cls, orders: Iterable[Any]) -> tuple[list[dict], list[dict]]:
        """
        Flatten orders (with loaded line items) into JSON-safe rows, ready
        to hand to a Celery task.
        """
        order_rows = []
        line_item_rows = []
        for order in orders:
            row = {column: _plain(getattr(order, column, None)) for column in cls.ORDER_COLUMNS[1:]}
            row["order_id"] = order.id
            order_rows.append(row)

            for item in order.line_items:
                line_item_rows.append({
                    "order_id": order.id,
                    "line_item_id": item.id,
                    "position": item.position,
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "line_subtotal": item.line_subtotal,
                    "status": _plain(item.status),
                    "special_instructions": item.special_instructions,
                })
        return order_rows, line_item_rows

    def export_account_orders(
        self,
        account_id: str,
        order_rows: list[dict[str, Any]],
        line_item_rows: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Replace the account's workbook with a fresh snapshot.

        Returns a result dict; a lock timeout is reported there. Any other
        failure propagates so the calling task can retry.
        """
        self._ensure_account_dir(account_id)
        path = self.workbook_path(account_id)
        lock_timeout = self.lock_timeout

        result = {
            "success": False,
            "message": "",
            "account_id": account_id,
            "path": str(path),
            "orders": len(order_rows),
            "line_items": len(line_item_rows),
            "exported_at": None,
        }

        try:
            lock = FileLock(str(path) + ".lock", timeout=lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for {path}")

                orders_df = pd.DataFrame(order_rows, columns=self.ORDER_COLUMNS)
                items_df = pd.DataFrame(line_item_rows, columns=self.LINE_ITEM_COLUMNS)

                with pd.ExcelWriter(str(path), engine="openpyxl") as writer:
                    orders_df.to_excel(writer, sheet_name=ORDERS_SHEET, index=False)
                    items_df.to_excel(writer, sheet_name=LINE_ITEMS_SHEET, index=False)

                export_time = datetime.now(timezone.utc).isoformat()
                logger.info(f"Exported {len(order_rows)} orders of account {account_id} to {path}")

                result["success"] = True
                result["message"] = f"{len(order_rows)} orders exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {path}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout exporting account {account_id}")

        return result

    def read_account_export(self, account_id: str) -> dict[str, pd.DataFrame]:
        """Both sheets of the account's workbook (empty frames if never exported)."""
        path = self.workbook_path(account_id)
        if not path.exists():
            return {
                ORDERS_SHEET: pd.DataFrame(columns=self.ORDER_COLUMNS),
                LINE_ITEMS_SHEET: pd.DataFrame(columns=self.LINE_ITEM_COLUMNS),
            }
        return pd.read_excel(path, sheet_name=[ORDERS_SHEET, LINE_ITEMS_SHEET], engine="openpyxl")

    def clear_account(self, account_id: str) -> bool:
        """Delete the account's workbook and lock file."""
        removed = False
        path = self.workbook_path(account_id)
        for f in [path, Path(str(path) + ".lock")]:
            if f.exists():
                f.unlink()
                removed = True
        if removed:
            logger.info(f"Export for account {account_id} cleared")
        return removed
