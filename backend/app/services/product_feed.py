import json
import time
from dataclasses import asdict, dataclass
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.db import SessionLocal
from app.models.product import Product
from app.services.catalog_service import stock_status


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    group_id: int
    name: str
    mrp: float
    stock: int
    unit: str
    cartons: int
    description: Optional[str]
    stock_status: str
    updated_at: Optional[str]

    @classmethod
    def from_product(cls, p: Product) -> "ProductSnapshot":
        return cls(
            id=p.id,
            group_id=p.group_id,
            name=p.name,
            mrp=float(p.mrp),
            stock=p.stock,
            unit=p.unit,
            cartons=p.cartons or 0,
            description=p.description,
            stock_status=stock_status(p.stock),
            updated_at=p.updated_at.isoformat() if p.updated_at else None,
        )


class _PollingFeed:
    """
    Lazy sequence of snapshots read from the catalog by polling.

    Each iteration starts from scratch (restartable): the first value is the
    current state, later values are yielded only when the state changed.
    Iteration ends when the watched record disappears or max_polls is hit.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_factory = session_factory
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.FEED_POLL_INTERVAL_MS / 1000.0
        )
        self.max_polls = max_polls
        self.sleep = sleep

    def _load(self, db: Session):
        raise NotImplementedError

    def __iter__(self) -> Iterator:
        last = None
        polls = 0
        while self.max_polls is None or polls < self.max_polls:
            if polls:
                self.sleep(self.poll_interval)
            with self.session_factory() as db:
                current = self._load(db)
            polls += 1
            if current is None:
                return
            if current != last:
                last = current
                yield current

    def sse(self) -> Iterator[str]:
        """Render the feed as a text/event-stream body."""
        for snap in self:
            yield f"data: {json.dumps(self._to_json(snap))}\n\n"

    def _to_json(self, snap):
        return asdict(snap)


class ProductFeed(_PollingFeed):
    def __init__(self, product_id: int, **kwargs):
        super().__init__(**kwargs)
        self.product_id = product_id

    def _load(self, db: Session) -> Optional[ProductSnapshot]:
        p = db.query(Product).filter(Product.id == self.product_id).first()
        return ProductSnapshot.from_product(p) if p else None


class GroupProductsFeed(_PollingFeed):
    """Snapshots of every product in a group, ordered by name."""

    def __init__(self, group_id: int, **kwargs):
        super().__init__(**kwargs)
        self.group_id = group_id

    def _load(self, db: Session) -> Tuple[ProductSnapshot, ...]:
        rows: List[Product] = (
            db.query(Product)
            .filter(Product.group_id == self.group_id)
            .order_by(Product.name)
            .all()
        )
        return tuple(ProductSnapshot.from_product(p) for p in rows)

    def _to_json(self, snap):
        return [asdict(s) for s in snap]
