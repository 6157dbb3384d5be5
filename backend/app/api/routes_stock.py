from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_session
from app.db import get_db
from app.models.idempotency import IdempotencyStatus
from app.repositories.idempotency_repo import IdempotencyRepository
from app.schemas.adjustment_schema import AdjustmentOut, AdjustmentRequest, AdjustmentResult
from app.schemas.product_schema import ProductOut
from app.services.session_service import SessionContext
from app.services.stock_ledger_service import (
    AdjustmentError,
    CommitFailed,
    ProductNotFound,
    StockLedgerService,
    Unauthorized,
)

router = APIRouter(prefix="/api/products", tags=["stock"])

_STATUS_FOR = {
    Unauthorized: 403,
    ProductNotFound: 404,
    CommitFailed: 503,
}


def _http_error(e: AdjustmentError) -> HTTPException:
    status = _STATUS_FOR.get(type(e), 400)
    return HTTPException(status_code=status, detail={"code": e.code, "message": e.message})


@router.post("/{product_id}/adjustments", response_model=AdjustmentResult)
def adjust_stock(
    product_id: int,
    payload: AdjustmentRequest,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    """
    payload: { "operation": "add"|"remove", "quantity": 20, "cartons": 2, "reason": "" }
    A repeated Idempotency-Key returns the first successful response
    instead of applying the adjustment twice.
    """
    idem = IdempotencyRepository()
    key = None
    if idempotency_key:
        key = f"stock.adjust:{product_id}:{session.uid}:{idempotency_key}"
        rec, created = idem.begin(key, operation="stock_adjustment")
        if not created:
            if rec and rec.status == IdempotencyStatus.COMPLETED and rec.response_body:
                return rec.response_body
            raise HTTPException(
                status_code=409, detail="This adjustment is already being processed"
            )

    svc = StockLedgerService(db)
    try:
        outcome = svc.apply_adjustment(
            product_id,
            payload.operation,
            payload.quantity,
            payload.cartons,
            session=session,
            reason=payload.reason,
        )
    except AdjustmentError as e:
        if key:
            idem.release(key)
        raise _http_error(e)
    except Exception:
        if key:
            idem.release(key)
        raise

    body = AdjustmentResult(
        product=ProductOut.from_product(outcome.product),
        adjustment=AdjustmentOut.model_validate(outcome.adjustment),
    ).model_dump(mode="json")
    if key:
        idem.mark_completed(key, body)
    return body


@router.get("/{product_id}/adjustments", response_model=List[AdjustmentOut])
def adjustment_history(
    product_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    svc = StockLedgerService(db)
    try:
        return svc.history(product_id, limit=limit)
    except AdjustmentError as e:
        raise _http_error(e)
