import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation as DecimalError
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models.product import MAX_COUNT, Product
from app.models.product_group import ProductGroup
from app.repositories.product_repo import ProductRepository
from app.services.session_service import SessionContext
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"

MAX_MRP = Decimal(10) ** 10


class CatalogException(Exception):
    pass


class CatalogNotFound(CatalogException):
    pass


class CatalogPermissionError(CatalogException):
    pass


def stock_status(stock: Optional[int], threshold: Optional[int] = None) -> str:
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    stock = stock or 0
    if stock == 0:
        return OUT_OF_STOCK
    if stock < threshold:
        return LOW_STOCK
    return IN_STOCK


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_mrp(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise CatalogException("Please enter a valid product MRP")
    try:
        value = Decimal(str(raw).strip())
    except DecimalError:
        raise CatalogException("Please enter a valid product MRP")
    if not value.is_finite():
        raise CatalogException("Please enter a valid product MRP")
    if value <= 0:
        raise CatalogException("Product MRP must be greater than zero")
    # Numeric(12, 2) holds ten integer digits
    if value >= MAX_MRP:
        raise CatalogException("Please enter a valid product MRP")
    try:
        return value.quantize(Decimal("0.01"))
    except DecimalError:
        raise CatalogException("Please enter a valid product MRP")


def _parse_count(raw: Any, label: str) -> int:
    if isinstance(raw, bool):
        raise CatalogException(f"Please enter a valid {label}")
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise CatalogException(f"Please enter a valid {label}")
    if value < 0:
        raise CatalogException(f"{label.capitalize()} cannot be negative")
    if value > MAX_COUNT:
        raise CatalogException(f"Please enter a valid {label}")
    return value


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepository(db)

    def _require_admin(self, session: SessionContext):
        if session is None or not session.is_admin():
            raise CatalogPermissionError("Only administrators can change the catalog")

    def list_groups(self) -> List[ProductGroup]:
        return self.repo.list_groups()

    def create_group(
        self, session: SessionContext, name: str, description: Optional[str] = None
    ) -> ProductGroup:
        self._require_admin(session)
        if _blank(name):
            raise CatalogException("Please enter a group name")
        with smart_transaction(self.db):
            group = self.repo.add_group(
                name=name.strip(), description=(description or "").strip() or None
            )
        log.info("product group created id=%s by uid=%s", group.id, session.uid)
        return group

    def list_products(self, group_id: int) -> List[Product]:
        if not self.repo.get_group(group_id):
            raise CatalogNotFound("Product group not found")
        return self.repo.list_by_group(group_id)

    def get_product(self, product_id: int) -> Product:
        product = self.repo.get(product_id)
        if not product:
            raise CatalogNotFound("Product not found")
        return product

    def create_product(
        self,
        session: SessionContext,
        group_id: int,
        name: Any,
        mrp: Any,
        stock: Any,
        unit: Optional[str] = None,
        cartons: Any = None,
        description: Optional[str] = None,
    ) -> Product:
        """
        Create a product with its opening stock snapshot. This is the only
        place stock and cartons are written outside the ledger.
        """
        self._require_admin(session)
        if _blank(name):
            raise CatalogException("Please enter a product name")
        if _blank(mrp):
            raise CatalogException("Please enter product MRP")
        if _blank(stock):
            raise CatalogException("Please enter initial stock")
        price = _parse_mrp(mrp)
        opening_stock = _parse_count(stock, "initial stock")
        opening_cartons = 0 if _blank(cartons) else _parse_count(cartons, "number of cartons")

        with smart_transaction(self.db):
            if not self.repo.get_group(group_id):
                raise CatalogNotFound("Product group not found")
            now = datetime.now(timezone.utc)
            product = self.repo.add(
                Product(
                    group_id=group_id,
                    name=name.strip(),
                    mrp=price,
                    stock=opening_stock,
                    unit=(unit or "").strip() or settings.DEFAULT_UNIT,
                    cartons=opening_cartons,
                    description=(description or "").strip(),
                    created_at=now,
                    updated_at=now,
                )
            )
        log.info(
            "product created id=%s group=%s stock=%s by uid=%s",
            product.id,
            group_id,
            opening_stock,
            session.uid,
        )
        return product
