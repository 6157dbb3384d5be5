from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db import Base


class StockAdjustment(Base):
    """Append-only audit entry, one per committed ledger adjustment."""

    __tablename__ = "stock_adjustments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    operation = Column(String(16), nullable=False)  # add, remove
    quantity = Column(Integer, nullable=False)
    cartons_delta = Column(Integer, nullable=False, default=0)
    new_stock = Column(Integer, nullable=False)
    new_cartons = Column(Integer, nullable=False)
    user_id = Column(String(64), ForeignKey("users.uid"), nullable=False, index=True)
    reason = Column(String(1024), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
