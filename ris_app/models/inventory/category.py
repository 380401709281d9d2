from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship
from ris_app.db.base import BaseModel

class Category(BaseModel):
    __tablename__ = 'categories'

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)

    # Relationships
    items = relationship("Item", back_populates="category")
