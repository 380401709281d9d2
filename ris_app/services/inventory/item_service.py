from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy import and_, or_
from ris_app.models.inventory.item import Item
from ris_app.models.inventory.category import Category
from ris_app.schemas.inventory.item import ItemCreate, ItemUpdate
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.services.inventory.stock_transaction_service import StockTransactionService
from ris_app.core.exceptions import NotFoundError, ValidationError, ConflictError
from ris_app.core.logging import log_user_action
from ris_app.models.shared.enums import TransactionType
import logging

logger = logging.getLogger(__name__)

class ItemService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = StockTransactionService(db)

    async def create_item(self, item_data: ItemCreate, current_user: CurrentUser) -> Item:
        # Validate category exists
        if item_data.category_id:
            await self._ensure_category(item_data.category_id)

        if item_data.sku:
            await self._ensure_unique_sku(item_data.sku)

        item = Item(
            **item_data.dict(),
            created_by=current_user.id,
            updated_by=current_user.id
        )

        try:
            self.db.add(item)
            await self.db.flush()

            # Opening balance goes through the ledger so replay reproduces it
            if item.quantity > 0:
                await self.ledger.append(
                    item_id=item.id,
                    transaction_type=TransactionType.IN,
                    quantity=item.quantity,
                    balance_after=item.quantity,
                    performed_by=current_user.id,
                    notes="Initial stock - Item created",
                )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Item create integrity error: {e.orig}")
            raise ConflictError("An item with this stock code already exists")
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "create_item", "item", item.id, item.name)
        return await self.get_item_by_id(item.id)

    async def get_item_by_id(self, item_id: int) -> Optional[Item]:
        result = await self.db.execute(
            select(Item)
            .where(Item.id == item_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_items(
        self,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        low_stock_only: bool = False
    ) -> List[Item]:
        query = select(Item).options(selectinload(Item.category))

        conditions = []
        if search:
            conditions.append(
                or_(
                    Item.name.ilike(f"%{search}%"),
                    Item.sku.ilike(f"%{search}%"),
                    Item.description.ilike(f"%{search}%")
                )
            )
        if category_id:
            conditions.append(Item.category_id == category_id)
        if low_stock_only:
            conditions.append(Item.quantity <= Item.min_stock_level)

        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(Item.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()

    async def get_low_stock_items(self) -> List[Item]:
        result = await self.db.execute(
            select(Item)
            .options(selectinload(Item.category))
            .where(Item.quantity <= Item.min_stock_level)
            .order_by(Item.quantity)
        )
        return result.scalars().all()

    async def update_item(self, item_id: int, item_data: ItemUpdate, current_user: CurrentUser) -> Item:
        item = await self.get_item_by_id(item_id)
        if not item:
            raise NotFoundError("Item not found")

        changes = item_data.dict(exclude_unset=True)
        new_quantity = changes.pop("quantity", None)

        if changes.get("category_id"):
            await self._ensure_category(changes["category_id"])
        if changes.get("sku") and changes["sku"] != item.sku:
            await self._ensure_unique_sku(changes["sku"])

        try:
            for field, value in changes.items():
                setattr(item, field, value)
            item.updated_by = current_user.id
            await self.db.flush()

            # Quantity edits are recorded as restock / adjustment entries
            if new_quantity is not None and new_quantity != item.quantity:
                old_quantity = item.quantity
                difference = new_quantity - old_quantity
                if difference > 0:
                    balance_after = await self.ledger.credit(item.id, difference)
                    transaction_type = TransactionType.IN
                    notes = f"Restocking - Item quantity updated from {old_quantity} to {new_quantity}"
                else:
                    balance_after = await self.ledger.debit(item.id, -difference)
                    transaction_type = TransactionType.OUT
                    notes = f"Stock adjustment - Item quantity updated from {old_quantity} to {new_quantity}"

                await self.ledger.append(
                    item_id=item.id,
                    transaction_type=transaction_type,
                    quantity=abs(difference),
                    balance_after=balance_after,
                    performed_by=current_user.id,
                    notes=notes,
                )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Item update integrity error: {e.orig}")
            raise ConflictError("An item with this stock code already exists")
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "update_item", "item", item_id)
        return await self.get_item_by_id(item_id)

    async def _ensure_category(self, category_id: int):
        category = await self.db.execute(select(Category.id).where(Category.id == category_id))
        if category.scalar_one_or_none() is None:
            raise ValidationError("Category not found")

    async def _ensure_unique_sku(self, sku: str):
        existing = await self.db.execute(select(Item.id).where(Item.sku == sku))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(f"An item with stock code {sku} already exists")
