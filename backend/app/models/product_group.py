from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db import Base


class ProductGroup(Base):
    __tablename__ = "product_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)

    products = relationship("Product", back_populates="group", order_by="Product.name")

    def __repr__(self):
        return f"<ProductGroup name={self.name}>"
