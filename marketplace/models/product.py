"""
Product model.

Listings are created by the product service; checkout only moves the
``stock`` column, always through a single conditional UPDATE so the
count can never go below zero.
"""

from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Text, CheckConstraint

from marketplace.core.utils import new_object_id, utcnow
from marketplace.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String, nullable=True, index=True)
    stock = Column(Integer, nullable=False, default=0)
    seller_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Product {self.id} '{self.title}' stock={self.stock}>"
