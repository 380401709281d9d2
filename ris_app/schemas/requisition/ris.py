from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import date
from ris_app.models.shared.enums import RequestStatus, BudgetSource

class RisBatchCreate(BaseModel):
    request_ids: List[int] = Field(default_factory=list)

class RisLineView(BaseModel):
    """One printed row of a RIS form."""
    stock_no: str
    unit: str
    description: str
    quantity: int
    status: Optional[RequestStatus] = None
    balance_after_issue: Optional[int] = None
    remarks: str = ""

    @property
    def is_issued(self) -> bool:
        return self.status == RequestStatus.APPROVED

class RisDocumentView(BaseModel):
    """Everything the RIS renderer needs for one request."""
    ris_number: str
    request_id: Optional[int] = None
    budget_source: str = BudgetSource.MOOE.value
    purpose: str = ""
    lines: List[RisLineView] = Field(default_factory=list)
    requested_by_name: str = ""
    requested_by_designation: str = ""
    received_by_name: str = ""
    received_by_designation: str = ""
    approved_by_name: Optional[str] = None
    approved_by_designation: Optional[str] = None
    reviewed_by: Optional[int] = None
    request_date: Optional[date] = None
    issue_date: Optional[date] = None
    entity_name: Optional[str] = None
    fund_cluster: Optional[str] = None
    division: Optional[str] = None
    responsibility_center: Optional[str] = None

class CustomRisLine(BaseModel):
    stock_no: str = ""
    description: str = ""
    unit: str = ""
    quantity: int = 0

    @validator('quantity')
    def validate_quantity(cls, v):
        if v < 0:
            raise ValueError('Quantity cannot be negative')
        return v

class CustomRisCreate(BaseModel):
    entity_name: Optional[str] = None
    fund_cluster: Optional[str] = None
    division: Optional[str] = None
    responsibility_center: Optional[str] = None
    budget_source: BudgetSource = BudgetSource.MOOE
    items: List[CustomRisLine] = Field(default_factory=list)
    purpose: str = ""
    requested_by: Optional[str] = None
    requested_by_position: Optional[str] = None
    approved_by: Optional[str] = None
    issued_by: Optional[str] = None
    received_by: Optional[str] = None
    received_by_position: Optional[str] = None

class TemplateCell(BaseModel):
    address: str
    value: Optional[str] = None
    type: str

class TemplatePreview(BaseModel):
    sheet_name: str
    cells: List[TemplateCell]
