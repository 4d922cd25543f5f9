from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from inventory_api.models.category import Category
from inventory_api.models.product import Product
from inventory_api.models.supplier import Supplier


def product_to_dict(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "category_id": p.category_id,
        "supplier_id": p.supplier_id,
        "quantity": p.quantity,
        "price": p.price,
        "location": p.location,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_for_update(self, product_id: int) -> Optional[Product]:
        """Load the product holding a row lock until the transaction ends."""
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )

    def sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        qry = self.db.query(Product.id).filter(Product.sku == sku)
        if exclude_id is not None:
            qry = qry.filter(Product.id != exclude_id)
        return qry.first() is not None

    def list_with_references(self) -> List[Dict[str, Any]]:
        """All products with category/supplier names joined in, newest first."""
        rows = (
            self.db.query(Product, Category.name, Supplier.name)
            .outerjoin(Category, Product.category_id == Category.id)
            .outerjoin(Supplier, Product.supplier_id == Supplier.id)
            .order_by(Product.id.desc())
            .all()
        )
        items = []
        for product, category_name, supplier_name in rows:
            d = product_to_dict(product)
            d["category"] = category_name
            d["supplier"] = supplier_name
            items.append(d)
        return items

    def create(self, **fields) -> Product:
        p = Product(**fields)
        self.db.add(p)
        self.db.flush()  # ensure id assigned
        return p

    def update_fields(self, product_id: int, values: Dict[str, Any]) -> int:
        """Apply a partial update; returns the number of rows matched."""
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .update(values, synchronize_session=False)
        )

    def delete(self, product: Product):
        self.db.delete(product)
        self.db.flush()
