"""
POS terminal flow over HTTP: catalog, cart editing, checkout and order editing.
"""
import threading

import pytest

from conftest import TENANT
from gourmetclick.repositories.handoff_slots import HandoffSlots


@pytest.fixture
def pos(client, terminal_headers, seed_menu):
    class _Pos:
        def get(self, url, **kw):
            return client.get(url, headers=terminal_headers, **kw)

        def post(self, url, **kw):
            return client.post(url, headers=terminal_headers, **kw)

        def patch(self, url, **kw):
            return client.patch(url, headers=terminal_headers, **kw)

        def delete(self, url, **kw):
            return client.delete(url, headers=terminal_headers, **kw)

    return _Pos()


def test_terminal_header_is_required(client):
    assert client.get("/pos/cart").status_code == 422


def test_catalog(pos):
    body = pos.get("/pos/catalog").json()

    assert [p["id"] for p in body["products"]] == ["p-agua", "p-taco"]
    assert [p["id"] for p in pos.get("/pos/catalog", params={"search": "TAC"}).json()["products"]] == ["p-taco"]


def test_add_merges_lines_and_prices_modifiers(pos):
    queso = {"name": "Queso", "extra_price": 5}
    pos.post("/pos/cart/items", json={"product_id": "p-taco", "modifiers": [queso]})
    resp = pos.post("/pos/cart/items", json={"product_id": "p-taco", "modifiers": [queso], "quantity": 2})

    assert resp.status_code == 201
    cart = resp.json()
    assert len(cart["lines"]) == 1
    line = cart["lines"][0]
    assert line["unit_price"] == 30.0 and line["quantity"] == 3
    assert cart["total"] == 90.0 and cart["item_count"] == 3


def test_note_becomes_a_modifier(pos):
    cart = pos.post("/pos/cart/items", json={"product_id": "p-taco", "note": " sin cebolla "}).json()

    assert cart["lines"][0]["modifiers"] == [{"name": "Nota", "value": "sin cebolla", "extra_price": 0.0}]


def test_unknown_or_inactive_product(pos):
    assert pos.post("/pos/cart/items", json={"product_id": "p-old"}).status_code == 404


def test_quantity_and_remove(pos):
    line_id = pos.post("/pos/cart/items", json={"product_id": "p-taco"}).json()["lines"][0]["line_id"]

    cart = pos.patch(f"/pos/cart/items/{line_id}", json={"delta": -3}).json()
    assert cart["lines"][0]["quantity"] == 1

    cart = pos.delete(f"/pos/cart/items/{line_id}").json()
    assert cart["lines"] == []


def test_checkout_empty_cart(pos):
    assert pos.post("/pos/checkout").status_code == 400


def test_checkout_dine_in_needs_a_table(pos, open_session):
    pos.post("/pos/cart/items", json={"product_id": "p-taco"})

    assert pos.post("/pos/checkout").status_code == 400
    assert len(pos.get("/pos/cart").json()["lines"]) == 1


def test_failed_checkout_leaves_the_cart_untouched(pos, db):
    pos.post("/pos/cart/items", json={"product_id": "p-taco", "quantity": 2})
    pos.patch("/pos/cart", json={"table_number": "3", "customer_name": "Ana"})
    before = pos.get("/pos/cart").json()

    resp = pos.post("/pos/checkout")

    assert resp.status_code == 409
    assert pos.get("/pos/cart").json() == before
    assert db.all("orders") == {}


def test_checkout_creates_order_and_clears_cart(pos, open_session):
    pos.post("/pos/cart/items", json={"product_id": "p-taco", "quantity": 2})
    pos.post("/pos/cart/items", json={"product_id": "p-agua"})
    pos.patch("/pos/cart", json={"table_number": "3", "payment_method": "card"})

    resp = pos.post("/pos/checkout")

    assert resp.status_code == 200, resp.text
    order = resp.json()
    assert order["total"] == 65.0
    assert order["cash_session_id"] == open_session
    assert order["table_number"] == "3"
    cart = pos.get("/pos/cart").json()
    assert cart["lines"] == [] and cart["table_number"] == ""
    assert cart["payment_method"] == "card"


def test_edit_existing_order_round_trip(pos, client, open_session, terminal_headers):
    pos.post("/pos/cart/items", json={"product_id": "p-taco"})
    pos.patch("/pos/cart", json={"table_number": "3"})
    order = pos.post("/pos/checkout").json()

    assert pos.post("/pos/cart/restore").status_code == 404
    resp = client.post(f"/orders/{order['id']}/prepare-edit", headers=terminal_headers)
    assert resp.status_code == 200

    cart = pos.post("/pos/cart/restore").json()
    assert cart["editing_order"]["id"] == order["id"]
    assert cart["table_number"] == "3"
    # slot is consumed
    assert pos.post("/pos/cart/restore").status_code == 404

    pos.post("/pos/cart/items", json={"product_id": "p-agua"})
    updated = pos.post("/pos/checkout").json()

    assert updated["id"] == order["id"]
    assert updated["total"] == 40.0
    assert updated["audit_log"][-1]["action"] == "UPDATED"
    assert pos.get("/pos/cart").json()["editing_order"] is None


def test_only_managers_can_check_out_an_edit(pos, client, auth, open_session, terminal_headers):
    pos.post("/pos/cart/items", json={"product_id": "p-taco"})
    pos.patch("/pos/cart", json={"table_number": "3"})
    order = pos.post("/pos/checkout").json()
    client.post(f"/orders/{order['id']}/prepare-edit", headers=terminal_headers)
    pos.post("/pos/cart/restore")

    auth["as_role"]("cashier", tenant_id=TENANT)
    resp = pos.post("/pos/checkout")

    assert resp.status_code == 403
    assert pos.get("/pos/cart").json()["editing_order"]["id"] == order["id"]


def test_malformed_edit_payload_is_rejected(pos, db):
    pos.post("/pos/cart/items", json={"product_id": "p-taco"})
    HandoffSlots(db).put(TENANT, "pos-1", "edit_order", {"id": "o1", "items": "not-a-list"})

    assert pos.post("/pos/cart/restore").status_code == 422
    cart = pos.get("/pos/cart").json()
    assert len(cart["lines"]) == 1 and cart["editing_order"] is None


def test_cart_requests_wait_for_the_terminal_lock(pos, terminals):
    pos.get("/pos/cart")
    terminal = terminals.get(TENANT, "pos-1")
    results = []

    worker = threading.Thread(
        target=lambda: results.append(pos.post("/pos/cart/items", json={"product_id": "p-taco"}).status_code)
    )
    with terminal.lock:
        worker.start()
        worker.join(0.2)
        assert worker.is_alive()
        assert terminal.cart.is_empty()

    worker.join(5)
    assert results == [201]
    assert len(terminal.cart.lines) == 1


def test_terminal_id_is_scoped_to_the_tenant(pos, auth, db, terminals):
    pos.post("/pos/cart/items", json={"product_id": "p-taco"})
    auth["as_role"]("owner", uid="owner-2", tenant_id="tenant-2")

    assert pos.get("/pos/cart").json()["lines"] == []

    auth["as_role"]("owner", uid="owner-1")
    assert len(pos.get("/pos/cart").json()["lines"]) == 1
    assert len(terminals) == 2
