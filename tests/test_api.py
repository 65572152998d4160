"""
HTTP-level tests for the FastAPI surface.
"""

import pytest
from fastapi.testclient import TestClient

from storefront import main
from storefront.ids import derive_product_id

client = TestClient(main.app)
OWNER = {"X-Account": main.settings.owner}


def as_buyer(name: str) -> dict:
    return {"X-Account": name}


@pytest.fixture(autouse=True)
def clean_state():
    main.reset_state()
    yield
    main.reset_state()


def add_widget(price=100, quantity=2) -> str:
    resp = client.post(
        "/api/v1/products",
        json={"name": "Widget", "price": price, "quantity": quantity},
        headers=OWNER,
    )
    assert resp.status_code == 201
    return resp.json()["product_id"]


# ── tests ─────────────────────────────────────────────────────────────────────

class TestProductsApi:
    def test_add_and_get(self):
        pid = add_widget()
        assert pid == derive_product_id("Widget")
        resp = client.get(f"/api/v1/products/{pid}")
        assert resp.status_code == 200
        assert resp.json() == {"name": "Widget", "price": 100, "quantity": 2}

    def test_add_requires_owner(self):
        resp = client.post(
            "/api/v1/products",
            json={"name": "Widget", "price": 100, "quantity": 2},
            headers=as_buyer("mallory"),
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "unauthorized"

    def test_add_requires_account_header(self):
        resp = client.post("/api/v1/products", json={"name": "Widget", "price": 1, "quantity": 1})
        assert resp.status_code == 422

    def test_duplicate_is_conflict(self):
        add_widget()
        resp = client.post(
            "/api/v1/products",
            json={"name": "Widget", "price": 5, "quantity": 5},
            headers=OWNER,
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "already_exists"

    def test_empty_name_is_invalid(self):
        resp = client.post("/api/v1/products", json={"name": "", "price": 5, "quantity": 5}, headers=OWNER)
        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_input"

    def test_name_that_is_not_utf8_encodable_is_invalid(self):
        resp = client.post(
            "/api/v1/products",
            content=b'{"name": "bad\\ud800", "price": 1, "quantity": 1}',
            headers={**OWNER, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_input"

    def test_negative_price_fails_validation(self):
        resp = client.post("/api/v1/products", json={"name": "X", "price": -5, "quantity": 5}, headers=OWNER)
        assert resp.status_code == 422

    def test_unknown_product_is_404(self):
        resp = client.get(f"/api/v1/products/{derive_product_id('Ghost')}")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_restock(self):
        pid = add_widget(quantity=0)
        resp = client.post(f"/api/v1/products/{pid}/restock", json={"quantity": 5}, headers=OWNER)
        assert resp.status_code == 200
        assert resp.json()["quantity"] == 5

    def test_list_products_pages(self):
        for n in range(12):
            client.post(
                "/api/v1/products",
                json={"name": f"Item {n}", "price": 1, "quantity": 1},
                headers=OWNER,
            )
        first = client.get("/api/v1/products").json()
        second = client.get("/api/v1/products", params={"offset": 10}).json()
        beyond = client.get("/api/v1/products", params={"offset": 30}).json()
        assert first["total"] == 12 and len(first["products"]) == 10
        assert [e["product"]["name"] for e in second["products"]] == ["Item 10", "Item 11"]
        assert beyond == {"products": [], "total": 12}

    def test_negative_offset_is_422(self):
        assert client.get("/api/v1/products", params={"offset": -1}).status_code == 422


class TestPurchasesApi:
    def test_buy_and_return_flow(self):
        pid = add_widget()
        resp = client.post(f"/api/v1/products/{pid}/buy", json={"value": 150}, headers=as_buyer("A"))
        assert resp.status_code == 200
        assert resp.json()["buyer"] == "A"
        assert resp.json()["returnable"] is True

        client.post(f"/api/v1/products/{pid}/buy", json={"value": 100}, headers=as_buyer("B"))
        resp = client.post(f"/api/v1/products/{pid}/buy", json={"value": 100}, headers=as_buyer("C"))
        assert resp.status_code == 409
        assert resp.json()["error"] == "out_of_stock"

        resp = client.post(f"/api/v1/products/{pid}/return", headers=as_buyer("A"))
        assert resp.status_code == 200
        assert client.get(f"/api/v1/products/{pid}").json()["quantity"] == 1
        assert client.get(f"/api/v1/products/{pid}/buyers").json() == {"buyers": ["B"], "total": 1}

        transfers = client.get("/api/v1/transfers").json()["transfers"]
        assert [(t["to"], t["amount"]) for t in transfers] == [("A", 50), ("A", 100)]

        kinds = [e["kind"] for e in client.get("/api/v1/events").json()["events"]]
        assert kinds == ["ProductAdded", "ProductBought", "ProductBought", "ProductReturned"]

    def test_buy_response_comes_from_the_purchase_itself(self, monkeypatch):
        pid = add_widget()

        def no_second_read(*args):
            raise AssertionError("buy must not re-read the purchase")

        monkeypatch.setattr(main.service, "get_purchase", no_second_read)
        resp = client.post(f"/api/v1/products/{pid}/buy", json={"value": 100}, headers=as_buyer("A"))
        assert resp.status_code == 200
        assert resp.json()["buyer"] == "A"
        assert resp.json()["opened_at"] == main.clock.now()

    def test_underpayment_is_402(self):
        pid = add_widget()
        resp = client.post(f"/api/v1/products/{pid}/buy", json={"value": 10}, headers=as_buyer("A"))
        assert resp.status_code == 402
        assert resp.json()["error"] == "insufficient_payment"

    def test_return_after_window_is_rejected(self):
        pid = add_widget()
        client.post(f"/api/v1/products/{pid}/buy", json={"value": 100}, headers=as_buyer("A"))
        resp = client.post(
            "/api/v1/admin/clock/advance",
            json={"ticks": main.settings.return_window},
            headers=OWNER,
        )
        assert resp.status_code == 200
        resp = client.post(f"/api/v1/products/{pid}/return", headers=as_buyer("A"))
        assert resp.status_code == 409
        assert resp.json()["error"] == "grace_period_expired"

    def test_get_purchase(self):
        pid = add_widget()
        client.post(f"/api/v1/products/{pid}/buy", json={"value": 100}, headers=as_buyer("A"))
        resp = client.get(f"/api/v1/products/{pid}/purchases/A")
        assert resp.status_code == 200
        body = resp.json()
        assert body["return_deadline"] == body["opened_at"] + main.settings.return_window
        assert client.get(f"/api/v1/products/{pid}/purchases/B").status_code == 409

    def test_failed_refund_is_502(self):
        pid = add_widget()
        main.payments.failing.add("A")
        resp = client.post(f"/api/v1/products/{pid}/buy", json={"value": 120}, headers=as_buyer("A"))
        assert resp.status_code == 502
        assert client.get(f"/api/v1/products/{pid}").json()["quantity"] == 2


class TestAdminApi:
    def test_mutations_tick_the_clock(self):
        assert client.get("/api/v1/clock").json() == {"tick": 0}
        add_widget()
        assert client.get("/api/v1/clock").json() == {"tick": 1}

    def test_advance_requires_owner(self):
        resp = client.post("/api/v1/admin/clock/advance", json={"ticks": 5}, headers=as_buyer("A"))
        assert resp.status_code == 403

    def test_reseed(self):
        add_widget()
        resp = client.post("/api/v1/admin/seed", headers=OWNER)
        assert resp.status_code == 200
        assert resp.json()["products"] == 14
        names = [e["product"]["name"] for e in client.get("/api/v1/products").json()["products"]]
        assert "Widget" not in names
        assert names[0] == "Batik Scarf"
