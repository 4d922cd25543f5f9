from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from inventory_api.api.auth import require_identity
from inventory_api.db import SessionLocal
from inventory_api.schemas.product_schema import (
    ActorIn,
    AuditEntryOut,
    ProductCreate,
    ProductListItem,
    ProductOut,
    ProductUpdate,
    QuantityAdjust,
)
from inventory_api.services.product_service import (
    ConflictError,
    NotFoundError,
    ProductService,
    StorageError,
    ValidationError,
)

router = APIRouter(
    prefix="/api/products",
    tags=["products"],
    dependencies=[Depends(require_identity)],
)

# actor recorded for user-initiated calls that don't name one
DEFAULT_ACTOR = "unknown"


def get_product_service() -> ProductService:
    return ProductService(SessionLocal)


def _internal_error():
    # cause is already logged by the service
    return HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[ProductListItem], summary="List products")
def list_products(svc: ProductService = Depends(get_product_service)):
    try:
        return svc.list_products()
    except StorageError:
        raise _internal_error()


@router.get("/{product_id}", response_model=ProductOut, summary="Get product by id")
def get_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    try:
        return svc.get_product(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError:
        raise _internal_error()


@router.post("", status_code=201, summary="Add product")
def add_product(payload: ProductCreate, svc: ProductService = Depends(get_product_service)):
    try:
        new_id = svc.add_product(
            name=payload.name,
            sku=payload.sku,
            category_id=payload.category_id,
            supplier_id=payload.supplier_id,
            quantity=payload.quantity,
            price=payload.price,
            location=payload.location,
            actor=payload.changed_by,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError:
        raise _internal_error()
    return {"id": new_id, "message": "Product added successfully!"}


@router.put("/{product_id}", summary="Update product fields")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    svc: ProductService = Depends(get_product_service),
):
    try:
        svc.update_product(
            product_id, payload.changes(), actor=payload.changed_by or DEFAULT_ACTOR
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError:
        raise _internal_error()
    return {"message": "Product updated successfully!"}


@router.delete("/{product_id}", summary="Delete product")
def delete_product(
    product_id: int,
    payload: Optional[ActorIn] = None,
    changed_by: Optional[str] = Query(None),
    svc: ProductService = Depends(get_product_service),
):
    actor = (payload.changed_by if payload else None) or changed_by or DEFAULT_ACTOR
    try:
        svc.delete_product(product_id, actor=actor)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError:
        raise _internal_error()
    return {"message": "Product deleted successfully!"}


@router.post("/{product_id}/adjust", summary="Adjust stock quantity by a delta")
def adjust_quantity(
    product_id: int,
    payload: QuantityAdjust,
    svc: ProductService = Depends(get_product_service),
):
    """
    payload: { "delta": -3, "changed_by": "alice" }
    returns the resulting quantity (never below zero)
    """
    try:
        qty = svc.adjust_quantity(
            product_id, payload.delta, actor=payload.changed_by or DEFAULT_ACTOR
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError:
        raise _internal_error()
    return {"message": "Quantity adjusted successfully!", "quantity": qty}


@router.get(
    "/{product_id}/audit",
    response_model=List[AuditEntryOut],
    summary="Audit trail for a product id",
)
def product_audit(product_id: int, svc: ProductService = Depends(get_product_service)):
    try:
        return svc.list_audit(product_id)
    except StorageError:
        raise _internal_error()
