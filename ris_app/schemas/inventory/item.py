from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime

class ItemBase(BaseModel):
    name: str
    description: Optional[str] = None
    sku: Optional[str] = None
    category_id: Optional[int] = None
    unit: str = "pcs"
    min_stock_level: int = 10

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Please add an item name')
        return v.strip()

    @validator('sku')
    def normalize_sku(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    @validator('min_stock_level')
    def validate_min_stock_level(cls, v):
        if v < 0:
            raise ValueError('Minimum stock level cannot be negative')
        return v

class ItemCreate(ItemBase):
    quantity: int = 0

    @validator('quantity')
    def validate_quantity(cls, v):
        if v < 0:
            raise ValueError('Quantity cannot be negative')
        return v

class ItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    category_id: Optional[int] = None
    unit: Optional[str] = None
    min_stock_level: Optional[int] = None
    quantity: Optional[int] = None

    @validator('quantity', 'min_stock_level')
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('Value cannot be negative')
        return v

class ItemBrief(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    quantity: int
    unit: str

    class Config:
        from_attributes = True

class Item(ItemBase):
    id: int
    quantity: int
    is_low_stock: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
