from decimal import Decimal
from typing import Any, Optional, Tuple

from sqlalchemy.orm import Session

from inventory_api.models.category import Category
from inventory_api.models.supplier import Supplier


def parse_reference(value: Any) -> Optional[int]:
    """
    Lenient id parsing: ints, integral floats/Decimals and numeric strings are
    accepted. Anything else (None, bools, "abc", 2.5) means "no reference".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, Decimal):
        return int(value) if value.is_finite() and value == value.to_integral_value() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class ReferenceValidator:
    """
    Resolves candidate category/supplier ids against their tables.

    A missing, malformed or dangling reference resolves to None instead of
    failing, so it can never block a product write.
    """

    def __init__(self, db: Session):
        self.db = db

    def _resolve(self, model, value: Any) -> Optional[int]:
        ref_id = parse_reference(value)
        if ref_id is None:
            return None
        found = self.db.query(model.id).filter(model.id == ref_id).first()
        return ref_id if found else None

    def resolve_category(self, value: Any) -> Optional[int]:
        return self._resolve(Category, value)

    def resolve_supplier(self, value: Any) -> Optional[int]:
        return self._resolve(Supplier, value)

    def resolve(
        self, category_id: Any, supplier_id: Any
    ) -> Tuple[Optional[int], Optional[int]]:
        return self.resolve_category(category_id), self.resolve_supplier(supplier_id)
