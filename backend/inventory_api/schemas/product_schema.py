# backend/inventory_api/schemas/product_schema.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: Optional[str] = None
    sku: Optional[str] = None
    # references are resolved leniently by the service, so accept anything here
    category_id: Any = None
    supplier_id: Any = None
    quantity: Optional[int] = Field(default=0, ge=0)
    price: Optional[Decimal] = Field(default=Decimal("0"), ge=0)
    location: Optional[str] = None
    changed_by: Optional[str] = None


class ProductUpdate(BaseModel):
    """
    Sparse update: only the fields present in the request body count as
    changes (see ``changes()``). Unknown keys are dropped.
    """

    model_config = ConfigDict(extra="ignore")
    name: Optional[str] = None
    sku: Optional[str] = None
    category_id: Any = None
    supplier_id: Any = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    location: Optional[str] = None
    changed_by: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"changed_by"})


class QuantityAdjust(BaseModel):
    # validated as numeric by the service so a bad delta maps to 400
    delta: Any = None
    changed_by: Optional[str] = None


class ActorIn(BaseModel):
    model_config = ConfigDict(extra="ignore")
    changed_by: Optional[str] = None


class ProductOut(BaseModel):
    id: int
    name: str
    sku: str
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    quantity: int
    price: Decimal
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductListItem(ProductOut):
    category: Optional[str] = None
    supplier: Optional[str] = None


class AuditEntryOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    action: str
    changed_by: str
    details: dict
    created_at: datetime
