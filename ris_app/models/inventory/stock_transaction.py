from sqlalchemy import Column, Integer, Text, ForeignKey, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from ris_app.db.base import BaseModel
from ris_app.models.shared.enums import TransactionType

class StockTransaction(BaseModel):
    """Append-only ledger entry; balance_after is the item quantity right after this entry."""
    __tablename__ = 'transactions'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_transactions_quantity_positive'),
        CheckConstraint('balance_after >= 0', name='ck_transactions_balance_non_negative'),
    )

    item_id = Column(Integer, ForeignKey('items.id'), nullable=False, index=True)
    type = Column(SQLEnum(TransactionType), nullable=False)
    quantity = Column(Integer, nullable=False)
    balance_after = Column(Integer)
    request_id = Column(Integer, ForeignKey('requests.id'), nullable=True, index=True)
    request_line_id = Column(Integer, ForeignKey('request_lines.id'), nullable=True)
    notes = Column(Text)
    performed_by = Column(Integer, nullable=False)  # User ID

    # Relationships
    item = relationship("Item", back_populates="transactions")
    request = relationship("Request", back_populates="transactions")
