from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.catalog_service import stock_status


class GroupCreate(BaseModel):
    name: str = Field(..., max_length=256)
    description: Optional[str] = None


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    description: Optional[str] = None


class ProductCreate(BaseModel):
    # raw form values; validated by the catalog service so every rejection
    # carries the same message the client shows
    group_id: int
    name: Any = None
    mrp: Any = None
    stock: Any = None
    unit: Optional[str] = None
    cartons: Any = None
    description: Optional[str] = None


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    group_id: int
    name: str
    mrp: float
    stock: int
    unit: str
    cartons: int
    description: Optional[str] = None
    stock_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_product(cls, p) -> "ProductOut":
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
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
