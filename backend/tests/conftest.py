"""
Pytest configuration and fixtures for backend tests.

Firestore and Storage are replaced by small in-memory fakes that understand
the subset of the client API the application uses (FieldFilter queries,
order_by / limit, batches, SERVER_TIMESTAMP and Increment transforms).
"""
import os

os.environ.setdefault("ORPHAN_SWEEP_MINUTES", "0")
os.environ.setdefault("PIN_SECRET", "test-secret")

import copy
import itertools
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.transforms import Increment

from gourmetclick.config import get_bucket, get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.main import app
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import orders_helpers
from gourmetclick.services.catalog import load_catalog
from gourmetclick.services.realtime import SUBSCRIBED, ChangeEvent
from gourmetclick.services.terminals import TerminalRegistry, get_terminals

TENANT = "tenant-1"


# ──────────────────────────────────────────────────────────────────────────────
# Fake Firestore
# ──────────────────────────────────────────────────────────────────────────────

_MISSING = object()


class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.store.setdefault(self._collection, {})

    def get(self, transaction=None):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        current = dict(self._docs.get(self.id) or {}) if merge else {}
        current.update(self._db.resolve(data, current))
        self._docs[self.id] = current

    def update(self, data):
        if self.id not in self._docs:
            raise NotFound(f"No document to update: {self._collection}/{self.id}")
        current = self._docs[self.id]
        current.update(self._db.resolve(data, current))

    def delete(self):
        self._docs.pop(self.id, None)


def _matches(data, field, op, value):
    actual = data.get(field, _MISSING)
    if actual is _MISSING:
        return False
    if op == "==":
        return actual == value
    if op == "!=":
        return actual is not None and actual != value
    if op == "in":
        return actual in value
    if op == "not-in":
        return actual is not None and actual not in value
    if actual is None:
        return False
    return {
        "<": actual < value,
        "<=": actual <= value,
        ">": actual > value,
        ">=": actual >= value,
    }[op]


class FakeQuery:
    def __init__(self, db, collection, filters=(), orders=(), limit=None, offset=0):
        self._db = db
        self._collection = collection
        self._filters = list(filters)
        self._orders = list(orders)
        self._limit = limit
        self._offset = offset

    def _copy(self, **kw):
        args = dict(filters=self._filters, orders=self._orders, limit=self._limit, offset=self._offset)
        args.update(kw)
        return FakeQuery(self._db, self._collection, **args)

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        # FieldFilter normalizes comparisons against None into unary operators.
        op_string = {"IS_NULL": "==", "IS_NOT_NULL": "!="}.get(getattr(op_string, "name", None), op_string)
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path, direction="ASCENDING"):
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count):
        return self._copy(limit=count)

    def offset(self, count):
        return self._copy(offset=count)

    def stream(self):
        docs = self._db.store.setdefault(self._collection, {})
        rows = [
            (doc_id, data)
            for doc_id, data in docs.items()
            if all(_matches(data, f, op, v) for f, op, v in self._filters)
        ]
        for field, direction in reversed(self._orders):
            rows.sort(
                key=lambda r: (r[1].get(field) is not None, r[1].get(field)),
                reverse=direction == "DESCENDING",
            )
        rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([FakeSnapshot(FakeDocRef(self._db, self._collection, i), d) for i, d in rows])

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)
        self.name = name

    def document(self, doc_id=None):
        return FakeDocRef(self._db, self.name, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    def __init__(self):
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        for op in self._ops:
            op()
        self._ops = []


class FakeTransaction:
    """Writes apply immediately; enough for single-client tests."""

    def __init__(self):
        self.writes = []

    def set(self, ref, data, merge=False):
        self.writes.append(ref.id)
        ref.set(data, merge=merge)

    def update(self, ref, data):
        self.writes.append(ref.id)
        ref.update(data)

    def delete(self, ref):
        self.writes.append(ref.id)
        ref.delete()


class FakeFirestore:
    def __init__(self):
        self.store = {}
        self._clock = itertools.count(1)
        self._epoch = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self):
        return self._epoch + timedelta(seconds=next(self._clock))

    def resolve(self, data, current):
        out = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                out[key] = self.now()
            elif isinstance(value, Increment):
                out[key] = (current.get(key) or 0) + value.value
            else:
                out[key] = copy.deepcopy(value)
        return out

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch()

    def transaction(self):
        return FakeTransaction()

    # test helpers
    def seed(self, collection, doc_id, data):
        self.collection(collection).document(doc_id).set(data)
        return doc_id

    def doc(self, collection, doc_id):
        return copy.deepcopy(self.store.get(collection, {}).get(doc_id))

    def all(self, collection):
        return copy.deepcopy(self.store.get(collection, {}))


# ──────────────────────────────────────────────────────────────────────────────
# Fake Storage
# ──────────────────────────────────────────────────────────────────────────────

class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.data = None
        self.content_type = None

    def upload_from_string(self, data, content_type=None):
        self.data = data
        self.content_type = content_type
        self.bucket.blobs[self.name] = self

    def make_public(self):
        pass

    @property
    def public_url(self):
        return f"https://storage.example.test/{self.name}"


class FakeBucket:
    def __init__(self):
        self.blobs = {}

    def blob(self, name):
        return FakeBlob(self, name)


# ──────────────────────────────────────────────────────────────────────────────
# Fake realtime transport
# ──────────────────────────────────────────────────────────────────────────────

class FakeChannel:
    def __init__(self, name, tenant_id, bindings, on_event, on_status):
        self.name = name
        self.tenant_id = tenant_id
        self.bindings = bindings
        self.on_event = on_event
        self.on_status = on_status
        self.closed = False

    def close(self):
        self.closed = True

    def emit(self, table, event_type="UPDATE", record_id="x", **new):
        self.on_event(ChangeEvent(table=table, event_type=event_type, record_id=record_id, new=new))


class FakeTransport:
    def __init__(self, fail=False):
        self.channels = []
        self.fail = fail

    def open(self, name, tenant_id, bindings, on_event, on_status):
        if self.fail:
            raise ConnectionError("upstream unavailable")
        channel = FakeChannel(name, tenant_id, bindings, on_event, on_status)
        self.channels.append(channel)
        return channel

    @property
    def last(self):
        return self.channels[-1]

    def open_channels(self):
        return [c for c in self.channels if not c.closed]


# ──────────────────────────────────────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def plain_folio_transaction(monkeypatch):
    """Run the folio step directly with the fake transaction."""
    monkeypatch.setattr(orders_helpers, "_claim_folio", orders_helpers._folio_step)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def terminals(db, transport):
    registry = TerminalRegistry(transport, lambda tenant_id: load_catalog(db, tenant_id))
    yield registry
    registry.close_all()


@pytest.fixture
def auth():
    """Mutable holder for the principal returned by `get_principal`."""
    holder = {
        "principal": Principal(uid="owner-1", role="owner", tenant_id=TENANT,
                               email="owner@test.com", display_name="Owner"),
    }

    def as_role(role, uid=None, tenant_id=TENANT):
        holder["principal"] = Principal(uid=uid or f"{role}-1", role=role, tenant_id=tenant_id,
                                        display_name=role.title())
        return holder["principal"]

    holder["as_role"] = as_role
    return holder


@pytest.fixture
def client(db, bucket, terminals, auth):
    """Test client with Firestore, Storage, auth and the terminal registry overridden."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_bucket] = lambda: bucket
    app.dependency_overrides[get_principal] = lambda: auth["principal"]
    app.dependency_overrides[get_terminals] = lambda: terminals

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def terminal_headers():
    return {"X-Terminal-Id": "pos-1"}


@pytest.fixture
def seed_menu(db):
    """Two categories and three products (one inactive) for TENANT."""
    db.seed("categories", "cat-drinks", {"tenant_id": TENANT, "name": "Bebidas", "sort_order": 1})
    db.seed("categories", "cat-food", {"tenant_id": TENANT, "name": "Comida", "sort_order": 0})
    db.seed("products", "p-taco", {
        "tenant_id": TENANT, "name": "Taco", "price": 25.0, "category_id": "cat-food",
        "is_active": True, "is_available": True, "created_at": db.now(),
    })
    db.seed("products", "p-agua", {
        "tenant_id": TENANT, "name": "Agua", "price": 15.0, "category_id": "cat-drinks",
        "is_active": True, "is_available": True, "created_at": db.now(),
    })
    db.seed("products", "p-old", {
        "tenant_id": TENANT, "name": "Viejo", "price": 10.0, "category_id": "cat-food",
        "is_active": False, "is_available": True, "created_at": db.now(),
    })
    return db


@pytest.fixture
def open_session(db):
    db.seed("cash_sessions", "sess-1", {
        "tenant_id": TENANT, "status": "open", "initial_amount": 500.0, "opened_at": db.now(),
    })
    return "sess-1"


def subscribed(channel):
    channel.on_status(SUBSCRIBED)
