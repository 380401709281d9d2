from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime
from ris_app.models.shared.enums import TransactionType
from ris_app.schemas.inventory.item import ItemBrief

class StockTransactionCreate(BaseModel):
    item_id: int
    type: TransactionType
    quantity: int
    notes: Optional[str] = None

    @validator('quantity')
    def validate_positive_quantity(cls, v):
        if v < 1:
            raise ValueError('Quantity must be at least 1')
        return v

class StockTransaction(BaseModel):
    id: int
    item_id: int
    type: TransactionType
    quantity: int
    balance_after: Optional[int] = None
    request_id: Optional[int] = None
    request_line_id: Optional[int] = None
    notes: Optional[str] = None
    performed_by: int
    created_at: Optional[datetime] = None
    item: Optional[ItemBrief] = None

    class Config:
        from_attributes = True
