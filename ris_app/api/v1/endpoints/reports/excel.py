import logging
from datetime import date, datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from ris_app.api.dependencies import require_admin
from ris_app.core.database import get_async_session
from ris_app.models.shared.enums import TransactionType
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.services.inventory.item_service import ItemService
from ris_app.services.inventory.stock_transaction_service import StockTransactionService
from ris_app.utils.data_exporter import DataExportService, EXPORT_FIELD_MAPPINGS

router = APIRouter()
logger = logging.getLogger(__name__)

def report_filename(name: str) -> str:
    return f"{name}-{datetime.now().strftime('%Y%m%d-%H%M%S')}"

@router.get("/inventory")
async def export_inventory(
    category_id: Optional[int] = Query(None),
    low_stock_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Inventory report as .xlsx"""
    items = await ItemService(db).get_items(
        limit=100000, category_id=category_id, low_stock_only=low_stock_only
    )
    exporter = DataExportService()
    mapping = EXPORT_FIELD_MAPPINGS["items"]
    data = exporter.prepare_data_for_export(items, mapping)
    logger.info(f"User {current_user.id} exported inventory report ({len(data)} items)")
    return exporter.export_to_excel(
        data, report_filename("Inventory-Report"), "Inventory", columns=list(mapping.values())
    )

@router.get("/low-stock")
async def export_low_stock(
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    items = await ItemService(db).get_low_stock_items()
    exporter = DataExportService()
    mapping = EXPORT_FIELD_MAPPINGS["low_stock"]
    data = exporter.prepare_data_for_export(items, mapping)
    logger.info(f"User {current_user.id} exported low stock report ({len(data)} items)")
    return exporter.export_to_excel(
        data, report_filename("Low-Stock-Report"), "Low Stock", columns=list(mapping.values())
    )

@router.get("/transactions")
async def export_transactions(
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Transaction report (optional type and date range) as .xlsx"""
    transactions = await StockTransactionService(db).get_transactions(
        current_user,
        limit=100000,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date
    )
    exporter = DataExportService()
    mapping = EXPORT_FIELD_MAPPINGS["transactions"]
    data = exporter.prepare_data_for_export(transactions, mapping)
    logger.info(f"User {current_user.id} exported transaction report ({len(data)} rows)")
    return exporter.export_to_excel(
        data, report_filename("Transactions-Report"), "Transactions", columns=list(mapping.values())
    )
