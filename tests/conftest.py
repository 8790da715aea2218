import pytest
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError
import stripe

import helldivers_backend.config as config
from helldivers_backend.app_setup.factory import create_app

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


# --- Faux Supabase (tables en mémoire + RPC validate_referral_code) ---

UNIQUE_COLUMNS = {
    "orders": ["transaction_id"],
    "custom_orders": ["payment_intent_id"],
}

CATALOG_ROWS: Dict[str, List[Dict[str, Any]]] = {
    "services": [
        {"id": "svc-45", "title": "Level boost", "price": 45.0, "active": True},
        {"id": "svc-10", "title": "Samples farm", "price": 10.0, "active": True},
        {"id": "svc-cheap", "title": "Emote", "price": 0.30, "active": True},
        {"id": "svc-retired", "title": "Old boost", "price": 5.0, "active": False},
    ],
    "bundles": [
        {"id": "bundle-1", "name": "Starter bundle", "discounted_price": 25.0, "active": True},
    ],
    "products": [
        {"id": "prod-sc", "name": "Super Credits", "product_type": "custom_item", "base_price": 5.0,
         "sale_price": None, "price_per_unit": 0.5, "status": "active", "visibility": "public"},
        {"id": "prod-armor", "name": "Armor set", "product_type": "item", "base_price": 20.0,
         "sale_price": 15.0, "price_per_unit": None, "status": "active", "visibility": "public"},
        {"id": "prod-hidden", "name": "Hidden", "product_type": "item", "base_price": 9.0,
         "sale_price": None, "price_per_unit": None, "status": "active", "visibility": "private"},
    ],
}

PROMO_CODES: Dict[str, Any] = {
    "HALF": {"valid": True, "type": "promo", "discount_type": "percentage", "discount_value": 50},
    "FIVEOFF": {"valid": True, "type": "promo", "discount_type": "fixed", "discount_value": 5},
    "BIGFIX": {"valid": True, "type": "promo", "discount_type": "fixed", "discount_value": 500},
    "FRIEND": {"valid": True, "type": "referral"},
    "EXPIRED": {"valid": False, "error": "This code has expired"},
}


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.filters = []
        self._limit: Optional[int] = None
        self._op = "select"
        self._payload: Any = None

    def select(self, *columns, **kwargs):
        return self

    def in_(self, column, values):
        wanted = [str(v) for v in values]
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [r for r in rows if all(f(r) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self._op, self.table_name))
        error = self.db.failures.get((self._op, self.table_name))
        if error is not None:
            raise error
        if self._op == "insert":
            return SimpleNamespace(data=[self.db.insert_row(self.table_name, dict(self._payload))])
        if self._op == "delete":
            removed = self._matching()
            self.db.tables[self.table_name] = [r for r in self.db.tables[self.table_name] if r not in removed]
            return SimpleNamespace(data=removed)
        rows = [dict(r) for r in self._matching()]
        if self._limit is not None:
            rows = rows[: self._limit]
        return SimpleNamespace(data=rows)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        if self.db.rpc_error is not None:
            raise self.db.rpc_error
        return SimpleNamespace(data=self.db.promo_codes.get(self.params.get("code")))


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {k: [dict(r) for r in v] for k, v in CATALOG_ROWS.items()}
        self.tables["orders"] = []
        self.tables["custom_orders"] = []
        self.promo_codes = dict(PROMO_CODES)
        self.failures: Dict[Any, Exception] = {}
        self.rpc_error: Optional[Exception] = None
        self.calls: List[Any] = []
        self.rpc_calls: List[Any] = []
        self._seq = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        for column in UNIQUE_COLUMNS.get(table, []):
            if any(r.get(column) == row.get(column) for r in self.tables[table]):
                raise APIError({"message": "duplicate key value violates unique constraint", "code": "23505"})
        self._seq += 1
        row.setdefault("id", f"{table}-{self._seq}")
        self.tables[table].append(row)
        return dict(row)


# --- Faux Stripe (PaymentIntent.create / retrieve) ---

class FakeStripe:
    def __init__(self):
        self.intents: Dict[str, Any] = {}
        self.created: List[Dict[str, Any]] = []
        self.create_error: Optional[Exception] = None

    def create(self, **params):
        if self.create_error is not None:
            raise self.create_error
        self.created.append(params)
        intent_id = f"pi_test_{len(self.created)}"
        intent = SimpleNamespace(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc",
            status="requires_payment_method",
            amount=params["amount"],
            amount_received=0,
            currency=params["currency"],
            payment_method_types=["card", "link"],
        )
        self.intents[intent_id] = intent
        return intent

    def add_succeeded(self, intent_id: str, amount: int):
        self.intents[intent_id] = SimpleNamespace(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc",
            status="succeeded",
            amount=amount,
            amount_received=amount,
            currency="usd",
            payment_method_types=["card"],
        )

    def retrieve(self, intent_id, **kwargs):
        if intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{intent_id}'", "intent")
        return self.intents[intent_id]


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    monkeypatch.setenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_KEY", "service-role-key")
    monkeypatch.setattr(config, "TRUSTED_PROXIES", [])


@pytest.fixture(autouse=True)
def fake_supabase(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    monkeypatch.setattr("helldivers_backend.infra.supabase_client.get_service_supabase", lambda: db)
    return db


@pytest.fixture(autouse=True)
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake.create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", fake.retrieve)
    return fake


@pytest.fixture()
def app():
    return create_app()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
