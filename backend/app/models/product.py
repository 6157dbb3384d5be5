from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.db import Base

# largest value the integer stock/cartons columns hold on every backend
MAX_COUNT = 2**31 - 1


def _utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("cartons >= 0", name="ck_products_cartons_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("product_groups.id"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    mrp = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    unit = Column(String(32), nullable=False, default="pcs")
    cartons = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow)

    group = relationship("ProductGroup", back_populates="products")

    def __repr__(self):
        return f"<Product id={self.id} name={self.name} stock={self.stock}>"
