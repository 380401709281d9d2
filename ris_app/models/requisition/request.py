from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from ris_app.db.base import BaseModel
from ris_app.models.shared.enums import RequestStatus, BudgetSource

class Request(BaseModel):
    __tablename__ = 'requests'

    requested_by = Column(Integer, nullable=False, index=True)  # User ID
    requested_by_name = Column(String(150), default="")
    requested_by_designation = Column(String(150), default="")
    received_by_name = Column(String(150), default="")
    received_by_designation = Column(String(150), default="")
    purpose = Column(Text, nullable=False)
    notes = Column(Text)
    budget_source = Column(SQLEnum(BudgetSource), nullable=False, default=BudgetSource.MOOE)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    is_single_item = Column(Boolean, nullable=False, default=False)
    reviewed_by = Column(Integer)  # User ID
    reviewed_at = Column(DateTime(timezone=True))
    rejection_reason = Column(Text)
    ris_number = Column(String(30), unique=True, nullable=True)

    # Relationships
    lines = relationship(
        "RequestLine",
        back_populates="request",
        order_by="RequestLine.position",
        cascade="all, delete-orphan",
    )
    transactions = relationship("StockTransaction", back_populates="request")

    # Single-item view kept for clients of the original one-item form
    @property
    def item_id(self):
        return self.lines[0].item_id if self.is_single_item and self.lines else None

    @property
    def quantity(self):
        return self.lines[0].quantity if self.is_single_item and self.lines else None

    @property
    def unit(self):
        return self.lines[0].unit if self.is_single_item and self.lines else None

    def __repr__(self):
        return f"<Request {self.id} {self.status}>"
