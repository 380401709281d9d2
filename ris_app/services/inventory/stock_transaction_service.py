from typing import List, Optional, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import and_, desc, update
from ris_app.models.inventory.stock_transaction import StockTransaction
from ris_app.models.inventory.item import Item
from ris_app.schemas.inventory.stock_transaction import StockTransactionCreate
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.core.exceptions import NotFoundError, InsufficientStockError
from ris_app.core.logging import log_user_action
from ris_app.models.shared.enums import TransactionType
from ris_app.db.base import utcnow
from datetime import date, datetime, time, timedelta, timezone
import logging

logger = logging.getLogger(__name__)

class StockTransactionService:
    """Inventory ledger: item quantities plus the append-only transaction log.

    ``debit``, ``credit`` and ``append`` never commit; the caller owns the
    transaction so that a stock change and its log entry land together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quantity(self, item_id: int) -> Optional[int]:
        result = await self.db.execute(select(Item.quantity).where(Item.id == item_id))
        return result.scalar_one_or_none()

    async def debit(
        self,
        item_id: int,
        quantity: int,
        shortage_message: str = "Insufficient stock quantity"
    ) -> int:
        """Decrement stock only if enough is on hand; returns the new balance"""
        result = await self.db.execute(
            update(Item)
            .where(and_(Item.id == item_id, Item.quantity >= quantity))
            .values(quantity=Item.quantity - quantity, updated_at=utcnow())
        )
        if result.rowcount == 0:
            available = await self.get_quantity(item_id)
            if available is None:
                raise NotFoundError("Item not found in inventory")
            raise InsufficientStockError(f"{shortage_message}. Available: {available}")

        return await self.get_quantity(item_id)

    async def credit(self, item_id: int, quantity: int) -> int:
        """Increment stock; returns the new balance"""
        result = await self.db.execute(
            update(Item)
            .where(Item.id == item_id)
            .values(quantity=Item.quantity + quantity, updated_at=utcnow())
        )
        if result.rowcount == 0:
            raise NotFoundError("Item not found")

        return await self.get_quantity(item_id)

    async def append(
        self,
        item_id: int,
        transaction_type: TransactionType,
        quantity: int,
        balance_after: int,
        performed_by: int,
        notes: Optional[str] = None,
        request_id: Optional[int] = None,
        request_line_id: Optional[int] = None,
    ) -> StockTransaction:
        """Append one ledger entry"""
        transaction = StockTransaction(
            item_id=item_id,
            type=transaction_type,
            quantity=quantity,
            balance_after=balance_after,
            request_id=request_id,
            request_line_id=request_line_id,
            notes=notes,
            performed_by=performed_by,
            created_by=performed_by,
        )
        self.db.add(transaction)
        await self.db.flush()
        return transaction

    async def create_transaction(
        self,
        transaction_data: StockTransactionCreate,
        current_user: CurrentUser
    ) -> StockTransaction:
        """Record a direct stock in/out movement"""
        try:
            if transaction_data.type == TransactionType.IN:
                balance_after = await self.credit(transaction_data.item_id, transaction_data.quantity)
            else:
                balance_after = await self.debit(transaction_data.item_id, transaction_data.quantity)

            transaction = await self.append(
                item_id=transaction_data.item_id,
                transaction_type=transaction_data.type,
                quantity=transaction_data.quantity,
                balance_after=balance_after,
                performed_by=current_user.id,
                notes=transaction_data.notes,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(
            current_user.id, "create_transaction", "item", transaction_data.item_id,
            f"{transaction_data.type.value} {transaction_data.quantity}, balance {balance_after}"
        )
        return await self.get_transaction_by_id(transaction.id)

    async def get_transaction_by_id(self, transaction_id: int) -> Optional[StockTransaction]:
        result = await self.db.execute(
            select(StockTransaction)
            .options(selectinload(StockTransaction.item))
            .where(StockTransaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_transactions(
        self,
        current_user: CurrentUser,
        skip: int = 0,
        limit: int = 100,
        item_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[StockTransaction]:
        """Get transactions, newest first; non-admins only see their own"""
        query = select(StockTransaction).options(selectinload(StockTransaction.item))

        conditions = []
        if not current_user.is_admin:
            conditions.append(StockTransaction.performed_by == current_user.id)
        if item_id:
            conditions.append(StockTransaction.item_id == item_id)
        if transaction_type:
            conditions.append(StockTransaction.type == transaction_type)
        if start_date:
            conditions.append(StockTransaction.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date:
            conditions.append(
                StockTransaction.created_at < datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            )

        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(desc(StockTransaction.created_at), desc(StockTransaction.id)).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_item_transactions(self, item_id: int, current_user: CurrentUser) -> List[StockTransaction]:
        """Get movement history for a specific item"""
        item = await self.db.execute(select(Item.id).where(Item.id == item_id))
        if item.scalar_one_or_none() is None:
            raise NotFoundError("Item not found")

        return await self.get_transactions(current_user, item_id=item_id, limit=10000)

    async def get_item_ledger(self, item_id: int) -> List[StockTransaction]:
        """All entries for an item in creation order (replay order)"""
        result = await self.db.execute(
            select(StockTransaction)
            .where(StockTransaction.item_id == item_id)
            .order_by(StockTransaction.created_at, StockTransaction.id)
        )
        return result.scalars().all()

    async def get_request_issues(self, request_id: int) -> List[StockTransaction]:
        """Issue (``out``) entries created by approving lines of a request, oldest first"""
        result = await self.db.execute(
            select(StockTransaction)
            .where(and_(
                StockTransaction.request_id == request_id,
                StockTransaction.type == TransactionType.OUT
            ))
            .order_by(StockTransaction.created_at, StockTransaction.id)
        )
        return result.scalars().all()

    async def get_issue_balances(self, request_id: int) -> Dict[str, Dict[int, int]]:
        """Balance-after values of a request's issues, keyed by line id and by item id"""
        by_line: Dict[int, int] = {}
        by_item: Dict[int, int] = {}
        for transaction in await self.get_request_issues(request_id):
            if transaction.balance_after is None:
                continue
            if transaction.request_line_id is not None:
                by_line[transaction.request_line_id] = transaction.balance_after
            by_item[transaction.item_id] = transaction.balance_after
        return {"by_line": by_line, "by_item": by_item}
