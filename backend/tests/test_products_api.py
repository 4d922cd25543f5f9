from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from inventory_api.api.auth import create_access_token
from inventory_api.main import app
from inventory_api.repositories.product_repo import ProductRepository

client = TestClient(app)


def _add(headers, **body):
    payload = {"name": "Widget", "sku": "SKU-1"}
    payload.update(body)
    return client.post("/api/products", json=payload, headers=headers)


# ---- authentication -------------------------------------------------------


def test_missing_token_is_401():
    res = client.get("/api/products")
    assert res.status_code == 401
    assert res.json()["detail"] == "No token"


def test_malformed_header_is_401():
    res = client.get("/api/products", headers={"Authorization": "Bearer"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Malformed token"


def test_bad_signature_is_403():
    res = client.get("/api/products", headers={"Authorization": "Bearer not.a.jwt"})
    assert res.status_code == 403


def test_expired_token_is_403():
    token = create_access_token("tester", expires_minutes=-5)
    res = client.get("/api/products", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 403


# ---- add / read -------------------------------------------------------------


def test_add_and_get(auth_headers, references):
    res = _add(auth_headers, category_id=1, supplier_id=1, quantity=5, price=9.99, location="A1")
    assert res.status_code == 201
    pid = res.json()["id"]

    got = client.get(f"/api/products/{pid}", headers=auth_headers)
    assert got.status_code == 200
    body = got.json()
    assert body["sku"] == "SKU-1"
    assert body["quantity"] == 5
    assert Decimal(str(body["price"])) == Decimal("9.99")
    assert body["category_id"] == 1


def test_list_includes_reference_names_newest_first(auth_headers, references):
    _add(auth_headers, category_id=1)
    _add(auth_headers, name="Gadget", sku="SKU-2", supplier_id="1")

    res = client.get("/api/products", headers=auth_headers)
    assert res.status_code == 200
    items = res.json()
    assert [it["sku"] for it in items] == ["SKU-2", "SKU-1"]
    assert items[0]["supplier"] == "Acme Supply Co"
    assert items[1]["category"] == "Hardware"


def test_add_invalid_references_are_dropped(auth_headers):
    res = _add(auth_headers, category_id="bogus", supplier_id=77)
    assert res.status_code == 201
    body = client.get(f"/api/products/{res.json()['id']}", headers=auth_headers).json()
    assert body["category_id"] is None
    assert body["supplier_id"] is None


def test_add_missing_sku_is_400(auth_headers):
    res = client.post("/api/products", json={"name": "Widget"}, headers=auth_headers)
    assert res.status_code == 400


def test_add_negative_quantity_is_400(auth_headers):
    res = _add(auth_headers, quantity=-1)
    assert res.status_code == 400


def test_add_duplicate_sku_is_409(auth_headers):
    assert _add(auth_headers).status_code == 201
    res = _add(auth_headers, name="Gadget")
    assert res.status_code == 409
    assert len(client.get("/api/products", headers=auth_headers).json()) == 1


def test_get_missing_is_404(auth_headers):
    assert client.get("/api/products/42", headers=auth_headers).status_code == 404


# ---- update -------------------------------------------------------------------


def test_update_fields(auth_headers):
    pid = _add(auth_headers, quantity=1).json()["id"]

    res = client.put(
        f"/api/products/{pid}",
        json={"quantity": 20, "changed_by": "bob", "unknown": "ignored"},
        headers=auth_headers,
    )
    assert res.status_code == 200

    assert client.get(f"/api/products/{pid}", headers=auth_headers).json()["quantity"] == 20
    trail = client.get(f"/api/products/{pid}/audit", headers=auth_headers).json()
    assert trail[-1]["action"] == "UPDATE"
    assert trail[-1]["changed_by"] == "bob"
    assert trail[-1]["details"] == {"updated_fields": {"quantity": 20}}


def test_update_without_allowed_fields_is_400(auth_headers):
    pid = _add(auth_headers).json()["id"]
    res = client.put(f"/api/products/{pid}", json={"changed_by": "bob"}, headers=auth_headers)
    assert res.status_code == 400


def test_update_missing_product_is_404(auth_headers):
    res = client.put("/api/products/1", json={"quantity": 20}, headers=auth_headers)
    assert res.status_code == 404
    assert client.get("/api/products/1/audit", headers=auth_headers).json() == []


def test_update_sku_conflict_is_409(auth_headers):
    _add(auth_headers)
    other = _add(auth_headers, name="Gadget", sku="SKU-2").json()["id"]
    res = client.put(f"/api/products/{other}", json={"sku": "SKU-1"}, headers=auth_headers)
    assert res.status_code == 409


def test_update_defaults_actor_to_unknown(auth_headers):
    pid = _add(auth_headers).json()["id"]
    client.put(f"/api/products/{pid}", json={"location": "C4"}, headers=auth_headers)
    trail = client.get(f"/api/products/{pid}/audit", headers=auth_headers).json()
    assert trail[-1]["changed_by"] == "unknown"


# ---- delete / adjust -----------------------------------------------------------


def test_delete_takes_actor_from_query(auth_headers):
    pid = _add(auth_headers).json()["id"]

    res = client.delete(f"/api/products/{pid}?changed_by=carol", headers=auth_headers)
    assert res.status_code == 200

    trail = client.get(f"/api/products/{pid}/audit", headers=auth_headers).json()
    assert trail[-1]["action"] == "DELETE"
    assert trail[-1]["changed_by"] == "carol"
    assert trail[-1]["details"] == {"name": "Widget", "sku": "SKU-1"}


def test_delete_takes_actor_from_body(auth_headers):
    pid = _add(auth_headers).json()["id"]

    res = client.request(
        "DELETE", f"/api/products/{pid}", json={"changed_by": "erin"}, headers=auth_headers
    )
    assert res.status_code == 200
    trail = client.get(f"/api/products/{pid}/audit", headers=auth_headers).json()
    assert trail[-1]["changed_by"] == "erin"


def test_delete_missing_is_404(auth_headers):
    assert client.delete("/api/products/9", headers=auth_headers).status_code == 404


def test_adjust_non_numeric_delta_is_400(auth_headers):
    pid = _add(auth_headers).json()["id"]
    for body in ({"delta": "5"}, {}, {"delta": None}):
        res = client.post(f"/api/products/{pid}/adjust", json=body, headers=auth_headers)
        assert res.status_code == 400


def test_out_of_range_quantities_are_400(auth_headers):
    res = _add(auth_headers, quantity=10**20)
    assert res.status_code == 400
    assert res.json()["detail"] == "quantity is too large"

    pid = _add(auth_headers, quantity=3).json()["id"]
    res = client.post(f"/api/products/{pid}/adjust", json={"delta": 10**20}, headers=auth_headers)
    assert res.status_code == 400
    assert client.get(f"/api/products/{pid}", headers=auth_headers).json()["quantity"] == 3


def test_update_null_quantity_is_400(auth_headers):
    pid = _add(auth_headers, quantity=7).json()["id"]

    res = client.put(f"/api/products/{pid}", json={"quantity": None}, headers=auth_headers)
    assert res.status_code == 400
    assert client.get(f"/api/products/{pid}", headers=auth_headers).json()["quantity"] == 7


def test_sku_race_on_insert_is_409(auth_headers, monkeypatch):
    assert _add(auth_headers).status_code == 201
    monkeypatch.setattr(ProductRepository, "sku_taken", lambda self, sku, exclude_id=None: False)

    res = _add(auth_headers, name="Gadget")
    assert res.status_code == 409
    assert len(client.get("/api/products", headers=auth_headers).json()) == 1


def test_storage_failure_is_generic_500(auth_headers, monkeypatch):
    def broken(self):
        raise SQLAlchemyError("secret connection details")

    monkeypatch.setattr(ProductRepository, "list_with_references", broken)
    res = client.get("/api/products", headers=auth_headers)
    assert res.status_code == 500
    assert "secret" not in res.text


def test_inventory_scenario(auth_headers):
    res = _add(auth_headers, quantity=5, price=9.99)
    assert res.status_code == 201
    assert res.json()["id"] == 1

    assert _add(auth_headers, name="Gadget").status_code == 409

    res = client.post("/api/products/1/adjust", json={"delta": -10}, headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["quantity"] == 0

    assert client.delete("/api/products/1", headers=auth_headers).status_code == 200

    res = client.post("/api/products/1/adjust", json={"delta": 1}, headers=auth_headers)
    assert res.status_code == 404

    actions = [e["action"] for e in client.get("/api/products/1/audit", headers=auth_headers).json()]
    assert actions == ["ADD", "QUANTITY_ADJUST", "DELETE"]
