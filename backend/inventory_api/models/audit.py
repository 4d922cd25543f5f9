import enum
import json
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text

from inventory_api.db import Base


class AuditAction(enum.Enum):
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    QUANTITY_ADJUST = "QUANTITY_ADJUST"


class AuditEntry(Base):
    """
    Append-only record of a product mutation.

    product_id is deliberately not a foreign key: DELETE entries keep pointing
    at the id of a product that no longer exists.
    """

    __tablename__ = "inventory_audit"
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, nullable=True, index=True)
    action = Column(Enum(AuditAction), nullable=False)
    changed_by = Column(String(128), nullable=False, default="system")
    change_details = Column(Text, nullable=False, default="{}")
    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    @property
    def details(self) -> dict:
        return json.loads(self.change_details or "{}")
