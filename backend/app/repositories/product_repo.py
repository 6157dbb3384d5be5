from typing import List, Optional

from app.models.product import Product
from app.models.product_group import ProductGroup
from app.models.stock_adjustment import StockAdjustment
from sqlalchemy.orm import Session


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_for_update(self, product_id: int) -> Optional[Product]:
        """
        Load a product with a row-level lock. Dialects without FOR UPDATE
        (SQLite) compile it away, so the query is always safe to issue.
        """
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_by_group(self, group_id: int) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.group_id == group_id)
            .order_by(Product.name)
            .all()
        )

    def add(self, product: Product) -> Product:
        self.db.add(product)
        self.db.flush()
        return product

    def get_group(self, group_id: int) -> Optional[ProductGroup]:
        return self.db.query(ProductGroup).filter(ProductGroup.id == group_id).first()

    def list_groups(self) -> List[ProductGroup]:
        return self.db.query(ProductGroup).order_by(ProductGroup.name).all()

    def add_group(self, name: str, description: Optional[str] = None) -> ProductGroup:
        g = ProductGroup(name=name, description=description)
        self.db.add(g)
        self.db.flush()
        return g


class AdjustmentRepository:
    """Append-only access to the stock adjustment audit trail."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> StockAdjustment:
        rec = StockAdjustment(**fields)
        self.db.add(rec)
        self.db.flush()
        return rec

    def get(self, adjustment_id: int) -> Optional[StockAdjustment]:
        return (
            self.db.query(StockAdjustment)
            .filter(StockAdjustment.id == adjustment_id)
            .first()
        )

    def history(self, product_id: int, limit: int = 100) -> List[StockAdjustment]:
        return (
            self.db.query(StockAdjustment)
            .filter(StockAdjustment.product_id == product_id)
            .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
            .limit(limit)
            .all()
        )

    def count_for(self, product_id: int) -> int:
        return (
            self.db.query(StockAdjustment)
            .filter(StockAdjustment.product_id == product_id)
            .count()
        )
