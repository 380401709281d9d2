from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from ris_app.models.shared.enums import RequestStatus, BudgetSource
from ris_app.schemas.inventory.item import ItemBrief

class RequestLineCreate(BaseModel):
    item_id: int
    quantity: int
    unit: Optional[str] = None

    @validator('quantity')
    def validate_positive_quantity(cls, v):
        if v < 1:
            raise ValueError('Quantity must be at least 1')
        return v

class RequestCreate(BaseModel):
    # Single-item form (item_id/quantity/unit) or the multi-item ``items`` list
    item_id: Optional[int] = None
    quantity: Optional[int] = None
    unit: Optional[str] = None
    items: List[RequestLineCreate] = Field(default_factory=list)
    purpose: str
    notes: Optional[str] = None
    budget_source: BudgetSource = BudgetSource.MOOE
    requested_by_name: str = ""
    requested_by_designation: str = ""
    received_by_name: str = ""
    received_by_designation: str = ""

    @validator('purpose')
    def validate_purpose(cls, v):
        if not v or not v.strip():
            raise ValueError('Please specify the purpose of the request')
        return v.strip()

    @validator('quantity')
    def validate_positive_quantity(cls, v):
        if v is not None and v < 1:
            raise ValueError('Quantity must be at least 1')
        return v

class RequestUpdate(BaseModel):
    quantity: Optional[int] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @validator('purpose')
    def validate_purpose(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Please specify the purpose of the request')
        return v.strip() if v is not None else v

    @validator('quantity')
    def validate_positive_quantity(cls, v):
        if v is not None and v < 1:
            raise ValueError('Quantity must be at least 1')
        return v

class RequestReject(BaseModel):
    rejection_reason: Optional[str] = None

class RequestLine(BaseModel):
    id: int
    position: int
    item_id: int
    quantity: int
    unit: str
    status: RequestStatus
    rejection_reason: Optional[str] = None
    item: Optional[ItemBrief] = None

    class Config:
        from_attributes = True

class Request(BaseModel):
    id: int
    requested_by: int
    requested_by_name: Optional[str] = ""
    requested_by_designation: Optional[str] = ""
    received_by_name: Optional[str] = ""
    received_by_designation: Optional[str] = ""
    purpose: str
    notes: Optional[str] = None
    budget_source: BudgetSource
    status: RequestStatus
    is_single_item: bool
    item_id: Optional[int] = None
    quantity: Optional[int] = None
    unit: Optional[str] = None
    lines: List[RequestLine] = Field(default_factory=list)
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    ris_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
