import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from ris_app.api.dependencies import get_current_user, require_admin
from ris_app.core.database import get_async_session
from ris_app.core.exceptions import NotFoundError, ForbiddenError
from ris_app.models.shared.enums import TransactionType
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.schemas.common.response import ApiResponse
from ris_app.schemas.inventory.stock_transaction import StockTransaction, StockTransactionCreate
from ris_app.services.inventory.stock_transaction_service import StockTransactionService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=ApiResponse[StockTransaction], status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_data: StockTransactionCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Record a stock in/out movement"""
    try:
        service = StockTransactionService(db)
        transaction = await service.create_transaction(transaction_data, current_user)
        return {"success": True, "data": transaction}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create transaction error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record transaction"
        )

@router.get("/", response_model=ApiResponse[List[StockTransaction]])
async def get_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    item_id: Optional[int] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Admins see every transaction, other users the ones they performed"""
    service = StockTransactionService(db)
    transactions = await service.get_transactions(
        current_user,
        skip=skip,
        limit=limit,
        item_id=item_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date
    )
    return {"success": True, "count": len(transactions), "data": transactions}

@router.get("/{transaction_id}", response_model=ApiResponse[StockTransaction])
async def get_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = StockTransactionService(db)
    transaction = await service.get_transaction_by_id(transaction_id)
    if not transaction:
        raise NotFoundError("Transaction not found")
    if not current_user.is_admin and transaction.performed_by != current_user.id:
        raise ForbiddenError("Not authorized to view this transaction")
    return {"success": True, "data": transaction}
