import os
import tempfile

# Point the app at a throwaway database before anything imports it
_TMP = tempfile.mkdtemp(prefix="inventory_api_tests_")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db")
os.environ["LOCK_DIR"] = os.path.join(_TMP, "locks")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["AUTH_ENABLED"] = "true"
os.environ["RESET_DB"] = "false"

import pytest

from inventory_api.api.auth import create_access_token
from inventory_api.db import SessionLocal, init_db
from inventory_api.models.category import Category
from inventory_api.models.supplier import Supplier
from inventory_api.services.product_service import ProductService


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def service():
    return ProductService(SessionLocal)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('tester')}"}


@pytest.fixture
def references():
    """One category and one supplier, both with id 1."""
    db = SessionLocal()
    try:
        db.add(Category(id=1, name="Hardware"))
        db.add(Supplier(id=1, name="Acme Supply Co"))
        db.commit()
    finally:
        db.close()
    return {"category_id": 1, "supplier_id": 1}
