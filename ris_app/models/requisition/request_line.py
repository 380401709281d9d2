from sqlalchemy import Column, Integer, String, Text, ForeignKey, CheckConstraint, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from ris_app.db.base import BaseModel
from ris_app.models.shared.enums import RequestStatus

class RequestLine(BaseModel):
    __tablename__ = 'request_lines'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_request_lines_quantity_positive'),
        UniqueConstraint('request_id', 'position', name='uq_request_lines_position'),
    )

    request_id = Column(Integer, ForeignKey('requests.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # zero-based order within the request
    item_id = Column(Integer, ForeignKey('items.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit = Column(String(30), nullable=False)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    rejection_reason = Column(Text)

    # Relationships
    request = relationship("Request", back_populates="lines")
    item = relationship("Item", back_populates="request_lines")
