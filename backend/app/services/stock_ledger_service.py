"""
Stock ledger: the only write path for a product's stock and carton count.

Every adjustment is planned against a product snapshot (pure, no I/O) and
then committed together with its audit entry in one transaction. The product
row is re-read under a row lock and a per-product file lock before the plan
is re-evaluated, so validation and commit always see the same state.
"""
import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from filelock import Timeout
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.product import MAX_COUNT, Product
from app.models.stock_adjustment import StockAdjustment
from app.repositories.product_repo import AdjustmentRepository, ProductRepository
from app.services.session_service import SessionContext
from app.utils.transactions import product_lock, smart_transaction

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"^\d+$")


class AdjustmentError(Exception):
    code = "adjustment_error"
    default_message = "Stock adjustment failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidOperation(AdjustmentError):
    code = "invalid_operation"
    default_message = "Operation must be 'add' or 'remove'"


class InvalidQuantity(AdjustmentError):
    code = "invalid_quantity"
    default_message = "Please enter a valid quantity"


class InvalidCartons(AdjustmentError):
    code = "invalid_cartons"
    default_message = "Please enter a valid number of cartons"


class InsufficientStock(AdjustmentError):
    code = "insufficient_stock"
    default_message = "Not enough stock available"


class InsufficientCartons(AdjustmentError):
    code = "insufficient_cartons"
    default_message = "Not enough cartons available"


class ProductNotFound(AdjustmentError):
    code = "product_not_found"
    default_message = "Product not found"


class Unauthorized(AdjustmentError):
    code = "unauthorized"
    default_message = "You are not allowed to modify stock"


class CommitFailed(AdjustmentError):
    code = "commit_failed"
    default_message = "Failed to update stock"


class Operation(enum.Enum):
    ADD = "add"
    REMOVE = "remove"

    @classmethod
    def parse(cls, raw: Any) -> "Operation":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise InvalidOperation()


def _parse_non_negative(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        text = raw.strip()
        if not _INT_RE.match(text) or len(text.lstrip("0")) > len(str(MAX_COUNT)):
            return None
        raw = int(text)
    if isinstance(raw, int) and 0 <= raw <= MAX_COUNT:
        return raw
    return None


def parse_quantity(raw: Any) -> int:
    """A quantity is a strictly positive whole number, given as int or digits."""
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        raise InvalidQuantity("Please enter quantity")
    value = _parse_non_negative(raw)
    if value is None or value <= 0:
        raise InvalidQuantity()
    return value


def parse_cartons(raw: Any) -> int:
    """Cartons are optional: missing or blank means 0, otherwise a whole number >= 0."""
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return 0
    value = _parse_non_negative(raw)
    if value is None:
        raise InvalidCartons()
    return value


def default_reason(operation: Operation, quantity: int, cartons_delta: int) -> str:
    verb = "Added" if operation is Operation.ADD else "Removed"
    text = f"{verb} {quantity} units"
    if cartons_delta > 0:
        text += f" and {cartons_delta} cartons"
    return text


@dataclass(frozen=True)
class AdjustmentPlan:
    operation: Operation
    quantity: int
    cartons_delta: int
    new_stock: int
    new_cartons: int
    reason: str


def plan_adjustment(
    product: Any,
    operation: Any,
    quantity: Any,
    cartons_delta: Any = None,
    reason: Optional[str] = None,
) -> AdjustmentPlan:
    """
    Validate a request against a product snapshot (anything with `stock` and
    `cartons`) and compute the resulting state. Raises an AdjustmentError
    subclass on rejection; never touches storage.
    """
    op = Operation.parse(operation)
    qty = parse_quantity(quantity)
    cartons = parse_cartons(cartons_delta)

    stock = product.stock or 0
    on_hand_cartons = product.cartons or 0

    if op is Operation.REMOVE:
        if qty > stock:
            raise InsufficientStock()
        if cartons > on_hand_cartons:
            raise InsufficientCartons()
        new_stock = stock - qty
        new_cartons = on_hand_cartons - cartons
    else:
        new_stock = stock + qty
        new_cartons = on_hand_cartons + cartons
        if new_stock > MAX_COUNT:
            raise InvalidQuantity("Quantity is too large")
        if new_cartons > MAX_COUNT:
            raise InvalidCartons("Number of cartons is too large")

    resolved = (reason or "").strip() or default_reason(op, qty, cartons)
    return AdjustmentPlan(
        operation=op,
        quantity=qty,
        cartons_delta=cartons,
        new_stock=new_stock,
        new_cartons=new_cartons,
        reason=resolved,
    )


@dataclass
class AdjustmentOutcome:
    product: Product
    adjustment: StockAdjustment

    @property
    def adjustment_id(self) -> int:
        return self.adjustment.id


class StockLedgerService:
    def __init__(self, db: Session, lock_timeout: Optional[float] = None):
        self.db = db
        self.products = ProductRepository(db)
        self.adjustments = AdjustmentRepository(db)
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.LEDGER_LOCK_TIMEOUT_SECONDS
        )

    def apply_adjustment(
        self,
        product_id: int,
        operation: Any,
        quantity: Any,
        cartons_delta: Any,
        session: SessionContext,
        reason: Optional[str] = None,
    ) -> AdjustmentOutcome:
        """
        Apply one add/remove adjustment on behalf of `session`.

        Input is validated before any lock or transaction is taken; the
        stock/carton checks run again against the locked row. Any rejection
        leaves both the product and the audit trail untouched.
        """
        if session is None or not session.can_modify_stock():
            log.info(
                "adjustment refused: uid=%s lacks stock permission",
                getattr(session, "uid", None),
            )
            raise Unauthorized()

        # cheap input checks up front; the authoritative plan is made under lock
        Operation.parse(operation)
        parse_quantity(quantity)
        parse_cartons(cartons_delta)

        try:
            with product_lock(product_id, self.lock_timeout):
                try:
                    with smart_transaction(self.db):
                        product = self.products.get_for_update(product_id)
                        if not product:
                            raise ProductNotFound()
                        plan = plan_adjustment(
                            product, operation, quantity, cartons_delta, reason
                        )
                        product.stock = plan.new_stock
                        product.cartons = plan.new_cartons
                        product.updated_at = datetime.now(timezone.utc)
                        audit = self.adjustments.append(
                            product_id=product.id,
                            operation=plan.operation.value,
                            quantity=plan.quantity,
                            cartons_delta=plan.cartons_delta,
                            new_stock=plan.new_stock,
                            new_cartons=plan.new_cartons,
                            user_id=session.uid,
                            reason=plan.reason,
                        )
                except SQLAlchemyError as e:
                    log.error("adjustment commit failed for product %s: %s", product_id, e)
                    raise CommitFailed() from e
        except Timeout as e:
            raise CommitFailed("Product is being updated by someone else; try again") from e
        except AdjustmentError as e:
            log.info("adjustment rejected for product %s: %s", product_id, e.code)
            raise

        log.info(
            "adjustment committed: product=%s op=%s qty=%s cartons=%s stock=%s uid=%s",
            product_id,
            plan.operation.value,
            plan.quantity,
            plan.cartons_delta,
            plan.new_stock,
            session.uid,
        )
        return AdjustmentOutcome(product=product, adjustment=audit)

    def history(self, product_id: int, limit: int = 100):
        if not self.products.get(product_id):
            raise ProductNotFound()
        return self.adjustments.history(product_id, limit=limit)
