from sqlalchemy import Column, Integer, String, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from ris_app.db.base import BaseModel

class Item(BaseModel):
    __tablename__ = 'items'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_items_quantity_non_negative'),
        CheckConstraint('min_stock_level >= 0', name='ck_items_min_stock_non_negative'),
    )

    name = Column(String(200), nullable=False, index=True)
    description = Column(Text)
    sku = Column(String(50), unique=True, nullable=True, index=True)  # Stock No. on the RIS form
    category_id = Column(Integer, ForeignKey('categories.id'))
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(30), nullable=False, default="pcs")
    min_stock_level = Column(Integer, nullable=False, default=10)

    # Relationships
    category = relationship("Category", back_populates="items")
    transactions = relationship("StockTransaction", back_populates="item")
    request_lines = relationship("RequestLine", back_populates="item")

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    @property
    def shortfall(self) -> int:
        return max(self.min_stock_level - self.quantity, 0)
