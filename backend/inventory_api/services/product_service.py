import math
import os
import tempfile
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from filelock import FileLock, Timeout
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_api.config import settings
from inventory_api.models.audit import AuditAction
from inventory_api.repositories.audit_repo import AuditRepository
from inventory_api.repositories.product_repo import ProductRepository, product_to_dict
from inventory_api.services.reference_validator import ReferenceValidator
from inventory_api.utils.logging import get_logger
from inventory_api.utils.transactions import read_scope, transaction_scope

log = get_logger("products")

# Largest values the quantity (32-bit integer) and price (Numeric(10, 2)) columns hold
MAX_QUANTITY = 2**31 - 1
MAX_PRICE = Decimal("99999999.99")

# Fields a caller may change through update_product; anything else is ignored.
UPDATABLE_FIELDS = (
    "name",
    "sku",
    "category_id",
    "supplier_id",
    "quantity",
    "price",
    "location",
)


class ProductServiceException(Exception):
    pass


class ValidationError(ProductServiceException):
    pass


class ConflictError(ProductServiceException):
    pass


class NotFoundError(ProductServiceException):
    pass


class StorageError(ProductServiceException):
    pass


def _required_text(value: Any, field: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def _quantity(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError("quantity must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("quantity must be an integer")
    if isinstance(value, Decimal) and (
        not value.is_finite() or value != value.to_integral_value()
    ):
        raise ValidationError("quantity must be an integer")
    if value < 0:
        raise ValidationError("quantity cannot be negative")
    if value > MAX_QUANTITY:
        raise ValidationError("quantity is too large")
    return int(value)


def _price(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError("price must be numeric")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("price must be numeric")
    if not price.is_finite():
        raise ValidationError("price must be numeric")
    if price < 0:
        raise ValidationError("price cannot be negative")
    if price > MAX_PRICE:
        raise ValidationError("price is too large")
    return price


def _delta(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError("delta numeric required")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("delta numeric required")
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValidationError("delta numeric required")
    return value


def clamp_quantity(current: int, delta) -> int:
    """current + delta floored at zero, rounded half-up to a whole unit.

    Results beyond the quantity column's range are rejected.
    """
    new_qty = Decimal(str(current)) + Decimal(str(delta))
    if new_qty < 0:
        new_qty = Decimal("0")
    # checked before quantize, which cannot represent arbitrarily large values
    if new_qty >= MAX_QUANTITY + Decimal("0.5"):
        raise ValidationError("quantity is too large")
    return int(new_qty.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ProductService:
    """
    Transactional product mutations.

    Each operation opens its own session from ``session_factory``, performs
    validation, conflict detection, the write and the audit append inside one
    transaction, and closes the session on every exit path. An operation
    either commits both the row change and its audit entry or leaves no trace.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @contextmanager
    def _storage_errors(self, operation: str, conflict_message: Optional[str] = None):
        # Sits outside transaction_scope, so the rollback has already happened
        try:
            yield
        except IntegrityError as exc:
            if conflict_message is None:
                log.exception("%s failed in storage", operation)
                raise StorageError("Storage failure") from exc
            log.info("%s rejected by unique constraint: %s", operation, exc.orig)
            raise ConflictError(conflict_message) from exc
        except SQLAlchemyError as exc:
            log.exception("%s failed in storage", operation)
            raise StorageError("Storage failure") from exc

    def _lock_path(self, product_id: int) -> str:
        locks_dir = settings.LOCK_DIR or os.path.join(
            tempfile.gettempdir(), "inventory_api_locks"
        )
        os.makedirs(locks_dir, exist_ok=True)
        return os.path.join(locks_dir, f"product_{product_id}.lock")

    # ---- reads -------------------------------------------------------

    def list_products(self) -> List[Dict[str, Any]]:
        with self._storage_errors("list_products"), read_scope(
            self.session_factory
        ) as db:
            return ProductRepository(db).list_with_references()

    def get_product(self, product_id: int) -> Dict[str, Any]:
        with self._storage_errors("get_product"), read_scope(
            self.session_factory
        ) as db:
            p = ProductRepository(db).get(product_id)
            if not p:
                raise NotFoundError("Product not found")
            return product_to_dict(p)

    def list_audit(self, product_id: int) -> List[Dict[str, Any]]:
        with self._storage_errors("list_audit"), read_scope(
            self.session_factory
        ) as db:
            return [
                {
                    "id": e.id,
                    "product_id": e.product_id,
                    "action": e.action.value,
                    "changed_by": e.changed_by,
                    "details": e.details,
                    "created_at": e.created_at,
                }
                for e in AuditRepository(db).list_for_product(product_id)
            ]

    # ---- mutations ---------------------------------------------------

    def add_product(
        self,
        name: Any,
        sku: Any,
        category_id: Any = None,
        supplier_id: Any = None,
        quantity: Any = 0,
        price: Any = 0,
        location: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> int:
        name = _required_text(name, "name")
        sku = _required_text(sku, "sku")
        quantity = _quantity(quantity)
        price = _price(price)

        with self._storage_errors("add_product", "SKU already exists"), transaction_scope(
            self.session_factory
        ) as db:
            products = ProductRepository(db)
            if products.sku_taken(sku):
                log.info("add_product rejected: sku %s already exists", sku)
                raise ConflictError("SKU already exists")

            category_id, supplier_id = ReferenceValidator(db).resolve(
                category_id, supplier_id
            )
            log.debug(
                "Resolved references for %s: category=%s supplier=%s",
                sku,
                category_id,
                supplier_id,
            )
            snapshot = {
                "name": name,
                "sku": sku,
                "category_id": category_id,
                "supplier_id": supplier_id,
                "quantity": quantity,
                "price": price,
                "location": location or None,
            }
            p = products.create(**snapshot)
            new_id = p.id
            AuditRepository(db).record(new_id, AuditAction.ADD, actor, snapshot)

        log.info("Product %s added (sku=%s) by %s", new_id, sku, actor or "system")
        return new_id

    def update_product(
        self, product_id: int, changes: Dict[str, Any], actor: Optional[str] = None
    ) -> None:
        requested = {k: v for k, v in (changes or {}).items() if k in UPDATABLE_FIELDS}
        if not requested:
            raise ValidationError("No updatable fields provided")

        values = dict(requested)
        if "name" in values:
            values["name"] = _required_text(values["name"], "name")
        if "sku" in values:
            values["sku"] = _required_text(values["sku"], "sku")
        for field in ("quantity", "price"):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be null")
        if "quantity" in values:
            values["quantity"] = _quantity(values["quantity"])
        if "price" in values:
            values["price"] = _price(values["price"])
        if "location" in values:
            values["location"] = values["location"] or None

        with self._storage_errors(
            "update_product", "SKU already used by another product"
        ), transaction_scope(self.session_factory) as db:
            products = ProductRepository(db)
            if "sku" in values and products.sku_taken(values["sku"], exclude_id=product_id):
                log.info("update_product rejected: sku %s in use", values["sku"])
                raise ConflictError("SKU already used by another product")

            refs = ReferenceValidator(db)
            if "category_id" in values:
                values["category_id"] = refs.resolve_category(values["category_id"])
            if "supplier_id" in values:
                values["supplier_id"] = refs.resolve_supplier(values["supplier_id"])

            if products.update_fields(product_id, values) == 0:
                raise NotFoundError("Product not found")

            AuditRepository(db).record(
                product_id, AuditAction.UPDATE, actor, {"updated_fields": requested}
            )

        log.info(
            "Product %s updated (%s) by %s",
            product_id,
            ", ".join(sorted(requested)),
            actor or "system",
        )

    def delete_product(self, product_id: int, actor: Optional[str] = None) -> None:
        with self._storage_errors("delete_product"), transaction_scope(
            self.session_factory
        ) as db:
            products = ProductRepository(db)
            p = products.get(product_id)
            if not p:
                raise NotFoundError("Product not found")

            # the row is gone after delete; keep what the audit entry needs
            snapshot = {"name": p.name, "sku": p.sku}
            products.delete(p)
            AuditRepository(db).record(product_id, AuditAction.DELETE, actor, snapshot)

        log.info("Product %s deleted (sku=%s) by %s", product_id, snapshot["sku"], actor or "system")

    def adjust_quantity(
        self, product_id: int, delta: Any, actor: Optional[str] = None
    ) -> int:
        """
        Apply ``delta`` to the stored quantity and return the result.

        Concurrent adjustments of one product are serialized by a per-product
        file lock plus a row lock (SELECT ... FOR UPDATE where the backend
        supports it). Results below zero are clamped to zero.
        """
        delta = _delta(delta)

        lock = FileLock(self._lock_path(product_id))
        try:
            with lock.acquire(timeout=settings.LOCK_TIMEOUT_SECONDS):
                with self._storage_errors("adjust_quantity"), transaction_scope(
                    self.session_factory
                ) as db:
                    p = ProductRepository(db).get_for_update(product_id)
                    if not p:
                        raise NotFoundError("Product not found")

                    new_qty = clamp_quantity(p.quantity, delta)
                    p.quantity = new_qty
                    db.flush()
                    AuditRepository(db).record(
                        product_id,
                        AuditAction.QUANTITY_ADJUST,
                        actor,
                        {"delta": delta, "new_quantity": new_qty},
                    )
        except Timeout:
            log.error("Timed out waiting for quantity lock on product %s", product_id)
            raise StorageError("Could not acquire product lock; try again")

        log.info("Product %s quantity adjusted by %s to %s", product_id, delta, new_qty)
        return new_qty
