import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from inventory_api.models.audit import AuditAction, AuditEntry

DEFAULT_ACTOR = "system"


class AuditRepository:
    """
    Audit logger for product mutations.

    Entries are appended through the caller's session so they commit or roll
    back together with the mutation they describe.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        product_id: Optional[int],
        action: AuditAction,
        actor: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        if details is None:
            details = {}
        if not isinstance(details, dict):
            raise TypeError("audit details must be a mapping")
        entry = AuditEntry(
            product_id=product_id,
            action=action,
            changed_by=actor or DEFAULT_ACTOR,
            # Decimal and datetime values are stored in their str() form
            change_details=json.dumps(
                {str(k): v for k, v in details.items()}, default=str
            ),
        )
        self.db.add(entry)
        # flush now so a failed append raises inside the mutation's transaction
        self.db.flush()
        return entry

    def list_for_product(self, product_id: int) -> List[AuditEntry]:
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.product_id == product_id)
            .order_by(AuditEntry.id)
            .all()
        )
