import pytest
from fastapi import HTTPException
from google.api_core.exceptions import ServiceUnavailable

from gourmetclick.config import collection_name, settings
from gourmetclick.core.auth import token_to_principal
from gourmetclick.core.crypto import gen_numeric_code, is_valid_pin, pin_digest
from gourmetclick.core.errors import backend_call
from gourmetclick.repositories.handoff_slots import HandoffSlots, slot_id


def test_owner_is_its_own_tenant():
    p = token_to_principal({"uid": "u1", "email": "a@b.c"})

    assert p.role == "owner"
    assert p.tenant_id == "u1"
    assert p.is_manager


def test_staff_claims():
    p = token_to_principal({"uid": "u2", "app_role": "waiter", "tenant_id": "t9"})

    assert (p.role, p.tenant_id, p.is_manager) == ("waiter", "t9", False)


def test_missing_role_claim_means_owner():
    assert token_to_principal({"uid": "u3", "tenant_id": "t1"}).role == "owner"


@pytest.mark.parametrize("claim", ["Cashier", "root", ""])
def test_unknown_role_claim_is_rejected(claim):
    with pytest.raises(HTTPException) as exc:
        token_to_principal({"uid": "emp-7", "app_role": claim, "tenant_id": "rest-1"})
    assert exc.value.status_code == 403


def test_token_without_uid():
    with pytest.raises(HTTPException) as exc:
        token_to_principal({})
    assert exc.value.status_code == 401


def test_backend_errors_become_502():
    with pytest.raises(HTTPException) as exc:
        with backend_call("Order creation"):
            raise ServiceUnavailable("firestore down")
    assert exc.value.status_code == 502
    assert exc.value.detail.startswith("Order creation failed")


def test_other_errors_pass_through():
    with pytest.raises(KeyError):
        with backend_call("Lookup"):
            raise KeyError("x")


def test_pins():
    assert is_valid_pin("0042")
    assert not is_valid_pin("42")
    assert is_valid_pin(gen_numeric_code())
    assert pin_digest("t1", "1234") == pin_digest("t1", "1234")
    assert pin_digest("t1", "1234") != pin_digest("t2", "1234")


def test_collection_prefix(monkeypatch):
    monkeypatch.setattr(settings, "firestore_collection_prefix", "staging_")
    assert collection_name("orders") == "staging_orders"


def test_handoff_slot_kinds(db):
    assert slot_id("t1", "pos-1", "edit_order") == "t1:pos-1:edit_order"
    with pytest.raises(ValueError):
        slot_id("t1", "pos-1", "cart")

    slots = HandoffSlots(db)
    slots.put("t1", "pos-1", "pos_session", {"employee_id": "e1"})
    assert slots.peek("t1", "pos-1", "pos_session") == {"employee_id": "e1"}
    assert slots.peek("t1", "pos-2", "pos_session") is None
    slots.clear("t1", "pos-1", "pos_session")
    assert slots.take("t1", "pos-1", "pos_session") is None
