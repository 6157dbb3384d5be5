from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.product_schema import ProductOut


class AdjustmentRequest(BaseModel):
    # quantity/cartons arrive exactly as typed; the ledger parses them
    operation: str = "add"
    quantity: Any = None
    cartons: Any = None
    reason: Optional[str] = Field(None, max_length=1000)


class AdjustmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    operation: str
    quantity: int
    cartons_delta: int
    new_stock: int
    new_cartons: int
    user_id: str
    reason: str
    created_at: Optional[datetime] = None


class AdjustmentResult(BaseModel):
    product: ProductOut
    adjustment: AdjustmentOut
