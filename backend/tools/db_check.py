import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
PRODUCT_ID = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Products ===")
cur.execute(
    "SELECT id, sku, name, quantity, price, category_id, supplier_id FROM products ORDER BY id DESC LIMIT 50"
)
for r in cur.fetchall():
    print(r)

print("\n=== Audit Trail ===")
if PRODUCT_ID:
    cur.execute(
        "SELECT id, product_id, action, changed_by, change_details, created_at FROM inventory_audit WHERE product_id=? ORDER BY id",
        (PRODUCT_ID,),
    )
else:
    cur.execute(
        "SELECT id, product_id, action, changed_by, change_details, created_at FROM inventory_audit ORDER BY id DESC LIMIT 20"
    )
for r in cur.fetchall():
    details = r[4] or "{}"
    try:
        details = json.loads(details)
    except ValueError:
        pass
    print(
        {
            "id": r[0],
            "product_id": r[1],
            "action": r[2],
            "changed_by": r[3],
            "details": details,
            "created_at": r[5],
        }
    )

conn.close()
