from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

import boutique.auth.repository as auth_repo
import boutique.coupons.repository as coupons_repo
import boutique.payments.repository as payments_repo
from boutique.errors import DuplicateKey, PersistenceConflict, StoreUnavailable
from boutique.infra import supabase_client

# Références prises avant la fixture autouse `store` qui remplace ces fonctions
find_active = coupons_repo.find_active
deactivate = coupons_repo.deactivate
replace_for_user = coupons_repo.replace_for_user
insert_order = payments_repo.insert_order
get_order_by_session_id = payments_repo.get_order_by_session_id
create_user = auth_repo.create_user
get_user_by_email = auth_repo.get_user_by_email


class _Resp:
    def __init__(self, data=None):
        self.data = data

def _query(result=None, exc=None):
    q = MagicMock()
    if exc is not None:
        q.execute.side_effect = exc
    else:
        q.execute.return_value = result
    return q

def _mk_client(monkeypatch, data=None, exc=None):
    client = MagicMock()
    table = client.table.return_value
    # chaque appel de la chaîne renvoie le même mock: .select().eq().eq().limit().execute()
    for name in ("select", "eq", "limit", "update", "upsert", "insert"):
        getattr(table, name).return_value = table
    if exc is not None:
        table.execute.side_effect = exc
    else:
        table.execute.return_value = _Resp(data)
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)
    return client, table

def test_execute_returns_response():
    res = supabase_client.execute(_query(_Resp([{"id": 1}])), "t.ok")
    assert supabase_client.first_row(res) == {"id": 1}

def test_execute_unique_violation_is_duplicate_key():
    err = APIError({"message": "duplicate key value", "code": "23505", "details": None, "hint": None})
    with pytest.raises(DuplicateKey):
        supabase_client.execute(_query(exc=err), "t.dup")

def test_execute_other_api_error_is_persistence_conflict():
    err = APIError({"message": "violates foreign key", "code": "23503", "details": None, "hint": None})
    with pytest.raises(PersistenceConflict) as exc:
        supabase_client.execute(_query(exc=err), "t.fk")
    assert not isinstance(exc.value, DuplicateKey)

@pytest.mark.parametrize("err", [httpx.ReadTimeout("slow"), httpx.ConnectError("down")])
def test_execute_network_errors_are_store_unavailable(err):
    with pytest.raises(StoreUnavailable) as exc:
        supabase_client.execute(_query(exc=err), "t.net")
    assert exc.value.retryable is True

def test_first_row_variants():
    assert supabase_client.first_row(_Resp([])) is None
    assert supabase_client.first_row(_Resp(None)) is None
    assert supabase_client.first_row(_Resp({"id": 2})) == {"id": 2}

def test_get_service_supabase_requires_key(monkeypatch):
    monkeypatch.setattr(supabase_client, "SUPABASE_SERVICE_KEY", "")
    with pytest.raises(RuntimeError):
        supabase_client.get_service_supabase()

def test_coupons_find_active(monkeypatch):
    client, table = _mk_client(monkeypatch, data=[{"code": "GIFTAAAAAA"}])
    assert find_active("u1") == {"code": "GIFTAAAAAA"}
    client.table.assert_called_with("coupons")
    table.eq.assert_any_call("user_id", "u1")
    table.eq.assert_any_call("is_active", True)

def test_coupons_replace_for_user_is_single_upsert(monkeypatch):
    row = {"code": "GIFTAAAAAA", "user_id": "u1", "discount_percentage": 10, "expiration_date": "x", "is_active": True}
    client, table = _mk_client(monkeypatch, data=[dict(row, id="c1")])
    assert replace_for_user(row)["id"] == "c1"
    table.upsert.assert_called_once_with(row, on_conflict="user_id")
    table.insert.assert_not_called()

def test_coupons_deactivate(monkeypatch):
    _, table = _mk_client(monkeypatch, data=[{"code": "GIFTAAAAAA", "is_active": False}])
    assert deactivate("u1", "GIFTAAAAAA") is True
    table.update.assert_called_once_with({"is_active": False})
    _mk_client(monkeypatch, data=[])
    assert deactivate("u1", "GIFTNOPE00") is False

def test_insert_order_duplicate_propagates(monkeypatch):
    err = APIError({"message": "duplicate key", "code": "23505", "details": None, "hint": None})
    _mk_client(monkeypatch, exc=err)
    with pytest.raises(DuplicateKey):
        insert_order(user_id="u1", products=[], total_amount=100, stripe_session_id="cs_1")

def test_insert_and_get_order(monkeypatch):
    client, table = _mk_client(monkeypatch, data=[{"id": "o1", "stripe_session_id": "cs_1"}])
    assert insert_order(user_id="u1", products=[], total_amount=100, stripe_session_id="cs_1")["id"] == "o1"
    client.table.assert_called_with("orders")
    assert get_order_by_session_id("cs_1")["id"] == "o1"
    table.eq.assert_called_with("stripe_session_id", "cs_1")

def test_users_repository(monkeypatch):
    _, table = _mk_client(monkeypatch, data=[{"id": "u1", "email": "a@b.c"}])
    assert get_user_by_email("a@b.c")["id"] == "u1"
    assert get_user_by_email("") is None
    create_user(name="A", email="a@b.c", password_hash="h")
    table.insert.assert_called_once_with({"name": "A", "email": "a@b.c", "password_hash": "h", "role": "customer"})
