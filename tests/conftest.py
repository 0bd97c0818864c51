import os

# Environnement de test posé AVANT l'import de boutique.config
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef012")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"

import threading
from datetime import datetime, timedelta, timezone
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Generator, List

import fakeredis
import pytest
from fastapi.testclient import TestClient

from boutique.app import app as fastapi_app
from boutique.auth.service import hash_password
from boutique.errors import DuplicateKey, SessionNotFound
from boutique.utils.security import require_user

CUSTOMER_EMAIL = "alice@example.com"
CUSTOMER_PASSWORD = "password1"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


class InMemoryStore:
    """
    Remplace Supabase pour les tests: tables users, coupons, orders
    avec les mêmes contraintes UNIQUE que sql/schema.sql.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.coupons: Dict[str, Dict[str, Any]] = {}  # clé: user_id
        self.orders: Dict[str, Dict[str, Any]] = {}  # clé: stripe_session_id
        self.lock = threading.Lock()

    # users
    def get_user_by_email(self, email):
        return next((dict(u) for u in self.users.values() if u["email"] == email), None)

    def get_user_by_id(self, user_id):
        u = self.users.get(str(user_id))
        return {k: u[k] for k in ("id", "name", "email", "role")} if u else None

    def create_user(self, *, name, email, password_hash, role="customer"):
        with self.lock:
            if self.get_user_by_email(email):
                raise DuplicateKey("users.create: doublon")
            user_id = str(uuid.uuid4())
            self.users[user_id] = {
                "id": user_id, "name": name, "email": email, "role": role, "password_hash": password_hash,
            }
            return dict(self.users[user_id])

    # coupons
    def find_by_code(self, user_id, code):
        c = self.coupons.get(str(user_id))
        return dict(c) if c and c["code"] == code else None

    def find_active(self, user_id):
        c = self.coupons.get(str(user_id))
        return dict(c) if c and c["is_active"] else None

    def deactivate(self, user_id, code):
        with self.lock:
            c = self.coupons.get(str(user_id))
            if not c or c["code"] != code:
                return False
            c["is_active"] = False
            return True

    def replace_for_user(self, row):
        with self.lock:
            data = dict(row)
            data["id"] = str(uuid.uuid4())
            self.coupons[str(row["user_id"])] = data
            return dict(data)

    # orders
    def insert_order(self, *, user_id, products, total_amount, stripe_session_id):
        with self.lock:
            if stripe_session_id in self.orders:
                raise DuplicateKey("orders.insert: doublon")
            order = {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "products": products,
                "total_amount": total_amount,
                "stripe_session_id": stripe_session_id,
            }
            self.orders[stripe_session_id] = order
            return dict(order)

    def get_order_by_session_id(self, stripe_session_id):
        o = self.orders.get(stripe_session_id)
        return dict(o) if o else None


class FakeGateway:
    """Passerelle Stripe simulée: sessions en mémoire, amount_total calculé comme Stripe."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.coupons: Dict[str, int] = {}
        self.created: List[Dict[str, Any]] = []
        self.deleted: List[str] = []

    def create_discount_coupon(self, discount_percentage):
        coupon_id = f"co_{uuid.uuid4().hex[:10]}"
        self.coupons[coupon_id] = discount_percentage
        return coupon_id

    def delete_discount_coupon(self, coupon_id):
        self.coupons.pop(coupon_id, None)
        self.deleted.append(coupon_id)

    def create_session(self, *, line_items, success_url, cancel_url, metadata, discounts=None):
        subtotal = sum(li["price_data"]["unit_amount"] * li["quantity"] for li in line_items)
        amount_total = subtotal
        for d in discounts or []:
            pct = self.coupons[d["coupon"]]
            off = int((Decimal(subtotal) * pct / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
            amount_total -= off
        session_id = f"cs_test_{uuid.uuid4().hex[:12]}"
        session = {
            "id": session_id,
            "url": f"https://checkout.stripe.test/{session_id}",
            "payment_status": "unpaid",
            "amount_total": amount_total,
            "metadata": dict(metadata),
            "success_url": success_url,
            "cancel_url": cancel_url,
            "line_items": line_items,
            "discounts": list(discounts or []),
        }
        self.sessions[session_id] = session
        self.created.append(session)
        return dict(session)

    def get_session(self, session_id):
        if session_id not in self.sessions:
            raise SessionNotFound(f"Session introuvable: {session_id}")
        return dict(self.sessions[session_id])

    def pay(self, session_id):
        self.sessions[session_id]["payment_status"] = "paid"


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Store de révocation en mémoire (fakeredis), neuf pour chaque test."""
    r = fakeredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr("boutique.infra.redis_client.get_redis", lambda: r)
    return r

@pytest.fixture(autouse=True)
def store(monkeypatch) -> InMemoryStore:
    """Aucun accès Supabase en test: les repositories pointent vers un store mémoire."""
    s = InMemoryStore()
    monkeypatch.setattr("boutique.auth.repository.get_user_by_email", s.get_user_by_email)
    monkeypatch.setattr("boutique.auth.repository.get_user_by_id", s.get_user_by_id)
    monkeypatch.setattr("boutique.auth.repository.create_user", s.create_user)
    monkeypatch.setattr("boutique.coupons.repository.find_by_code", s.find_by_code)
    monkeypatch.setattr("boutique.coupons.repository.find_active", s.find_active)
    monkeypatch.setattr("boutique.coupons.repository.deactivate", s.deactivate)
    monkeypatch.setattr("boutique.coupons.repository.replace_for_user", s.replace_for_user)
    monkeypatch.setattr("boutique.payments.repository.insert_order", s.insert_order)
    monkeypatch.setattr("boutique.payments.repository.get_order_by_session_id", s.get_order_by_session_id)
    return s

@pytest.fixture(autouse=True)
def gateway(monkeypatch) -> FakeGateway:
    g = FakeGateway()
    monkeypatch.setattr("boutique.payments.stripe_client.create_session", g.create_session)
    monkeypatch.setattr("boutique.payments.stripe_client.create_discount_coupon", g.create_discount_coupon)
    monkeypatch.setattr("boutique.payments.stripe_client.delete_discount_coupon", g.delete_discount_coupon)
    monkeypatch.setattr("boutique.payments.stripe_client.get_session", g.get_session)
    return g

@pytest.fixture
def customer(store) -> Dict[str, Any]:
    return store.create_user(name="Alice", email=CUSTOMER_EMAIL, password_hash=hash_password(CUSTOMER_PASSWORD))

@pytest.fixture
def logged_client(client, customer) -> TestClient:
    """Client authentifié par une vraie connexion (cookies accessToken/refreshToken posés par l'API)."""
    res = client.post("/api/v1/auth/login", json={"email": CUSTOMER_EMAIL, "password": CUSTOMER_PASSWORD})
    assert res.status_code == 200, res.text
    return client

@pytest.fixture
def as_user(app):
    """Court-circuite l'authentification: require_user renvoie un utilisateur fixe."""
    fake_user = {"id": "test-user", "name": "Test User", "email": "test@example.com", "role": "customer"}
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield fake_user
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def active_coupon(store):
    """Fabrique: place un coupon pour un utilisateur (expiration relative en jours)."""
    def _make(user_id: str, code: str = "GIFTABC123", pct: int = 10, days: int = 30, is_active: bool = True) -> Dict[str, Any]:
        return store.replace_for_user({
            "code": code,
            "user_id": str(user_id),
            "discount_percentage": pct,
            "expiration_date": (datetime.now(timezone.utc) + timedelta(days=days)).isoformat(),
            "is_active": is_active,
        })
    return _make
