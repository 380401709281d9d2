import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from ris_app.api.dependencies import get_current_user, require_admin
from ris_app.core.database import get_async_session
from ris_app.core.exceptions import NotFoundError
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.schemas.common.response import ApiResponse
from ris_app.schemas.inventory.item import Item, ItemCreate, ItemUpdate
from ris_app.schemas.inventory.stock_transaction import StockTransaction
from ris_app.services.inventory.item_service import ItemService
from ris_app.services.inventory.stock_transaction_service import StockTransactionService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=ApiResponse[Item], status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: ItemCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Create a new item; a positive opening quantity is logged as stock in"""
    try:
        service = ItemService(db)
        item = await service.create_item(item_data, current_user)
        return {"success": True, "data": item}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create item error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create item"
        )

@router.get("/", response_model=ApiResponse[List[Item]])
async def get_items(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    low_stock_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get all items with optional filters"""
    service = ItemService(db)
    items = await service.get_items(
        skip=skip,
        limit=limit,
        search=search,
        category_id=category_id,
        low_stock_only=low_stock_only
    )
    return {"success": True, "count": len(items), "data": items}

@router.get("/low-stock", response_model=ApiResponse[List[Item]])
async def get_low_stock_items(
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Items at or below their minimum stock level"""
    service = ItemService(db)
    items = await service.get_low_stock_items()
    return {"success": True, "count": len(items), "data": items}

@router.get("/{item_id}", response_model=ApiResponse[Item])
async def get_item(
    item_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = ItemService(db)
    item = await service.get_item_by_id(item_id)
    if not item:
        raise NotFoundError("Item not found")
    return {"success": True, "data": item}

@router.put("/{item_id}", response_model=ApiResponse[Item])
async def update_item(
    item_id: int,
    item_data: ItemUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Update an item; quantity changes go through the transaction log"""
    try:
        service = ItemService(db)
        item = await service.update_item(item_id, item_data, current_user)
        return {"success": True, "data": item}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update item error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update item"
        )

@router.get("/{item_id}/transactions", response_model=ApiResponse[List[StockTransaction]])
async def get_item_transactions(
    item_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Stock movement history of one item, newest first"""
    service = StockTransactionService(db)
    transactions = await service.get_item_transactions(item_id, current_user)
    return {"success": True, "count": len(transactions), "data": transactions}
