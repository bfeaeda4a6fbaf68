"""
Celery Tasks
Background report exports, kept off the request path.
"""

import logging
import time

from foodtruck.celery_worker import celery_app
from foodtruck.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def export_account_orders(
    self,
    account_id: str,
    order_rows: list,
    line_item_rows: list,
    data_directory: str,
    lock_timeout: float,
) -> dict:
    """
    Write an account's orders and line items to its Excel workbook.

    Args:
        account_id: Account the rows belong to
        order_rows: Rows from ExcelManager.serialize_orders
        line_item_rows: Rows from ExcelManager.serialize_orders
        data_directory: Root of the per-account export folders
        lock_timeout: Seconds to wait for the workbook lock
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting {len(order_rows)} orders of account {account_id}")
    start_time = time.time()

    manager = ExcelManager(data_directory, lock_timeout=lock_timeout)
    result = manager.export_account_orders(account_id, order_rows, line_item_rows)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: account {account_id} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: account {account_id} export failed - {result['message']}")

    return result
