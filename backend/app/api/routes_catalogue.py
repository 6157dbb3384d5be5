from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_current_session
from app.db import get_db
from app.schemas.product_schema import GroupCreate, GroupOut, ProductCreate, ProductOut
from app.services.catalog_service import (
    CatalogException,
    CatalogNotFound,
    CatalogPermissionError,
    CatalogService,
)
from app.services.product_feed import GroupProductsFeed, ProductFeed
from app.services.session_service import SessionContext

router = APIRouter(prefix="/api", tags=["catalogue"])


def _raise_http(e: CatalogException):
    if isinstance(e, CatalogNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CatalogPermissionError):
        raise HTTPException(status_code=403, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("/groups", response_model=List[GroupOut], summary="List product groups")
def list_groups(
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    return CatalogService(db).list_groups()


@router.post("/groups", response_model=GroupOut, status_code=201)
def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        return CatalogService(db).create_group(session, payload.name, payload.description)
    except CatalogException as e:
        _raise_http(e)


@router.get("/groups/{group_id}/products", response_model=List[ProductOut])
def list_products(
    group_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        products = CatalogService(db).list_products(group_id)
    except CatalogException as e:
        _raise_http(e)
    return [ProductOut.from_product(p) for p in products]


@router.get("/groups/{group_id}/products/stream", summary="Live product list (server-sent events)")
def stream_products(
    group_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        CatalogService(db).list_products(group_id)
    except CatalogException as e:
        _raise_http(e)
    return StreamingResponse(GroupProductsFeed(group_id).sse(), media_type="text/event-stream")


@router.post("/products", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        p = CatalogService(db).create_product(
            session,
            group_id=payload.group_id,
            name=payload.name,
            mrp=payload.mrp,
            stock=payload.stock,
            unit=payload.unit,
            cartons=payload.cartons,
            description=payload.description,
        )
    except CatalogException as e:
        _raise_http(e)
    return ProductOut.from_product(p)


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        return ProductOut.from_product(CatalogService(db).get_product(product_id))
    except CatalogException as e:
        _raise_http(e)


@router.get("/products/{product_id}/stream", summary="Live product snapshots (server-sent events)")
def stream_product(
    product_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        CatalogService(db).get_product(product_id)
    except CatalogException as e:
        _raise_http(e)
    return StreamingResponse(ProductFeed(product_id).sse(), media_type="text/event-stream")
