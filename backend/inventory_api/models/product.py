from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text

from inventory_api.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    # never reuse ids: audit entries keep pointing at deleted products
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    # References are checked at write time, not by a FK constraint
    category_id = Column(Integer, nullable=True, index=True)
    supplier_id = Column(Integer, nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    location = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Product sku={self.sku} name={self.name}>"
