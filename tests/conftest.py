import itertools
import os
from types import SimpleNamespace
from typing import Any, Callable, Dict, Generator, List, Tuple
from unittest.mock import MagicMock

# Pas de Redis en tests: à positionner avant l'import de l'app (lifespan)
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from academy.app import app as fastapi_app
from academy.utils.security import require_user

TEST_USER: Dict[str, Any] = {
    "id": "test-user",
    "email": "test@example.com",
    "metadata": {"full_name": "Test User"},
    "token": "fake-token",
}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: dict(TEST_USER)
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Aucun accès réseau: clients Supabase remplacés par des MagicMock
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("academy.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("academy.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("academy.infra.revalidate.REVALIDATE_URL", "")


# --- Base en mémoire ------------------------------------------------------

UNIQUE_KEYS: Dict[str, Tuple[str, ...]] = {
    "user_course_enrollments": ("user_id", "course_id"),
    "cart_items": ("user_id", "course_id"),
}


class FakeQuery:
    """Sous-ensemble du query builder postgrest utilisé par les repositories."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._limit = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, col, value):
        self.filters.append(lambda r: r.get(col) == value)
        return self

    def neq(self, col, value):
        self.filters.append(lambda r: r.get(col) != value)
        return self

    def in_(self, col, values):
        values = list(values)
        self.filters.append(lambda r: r.get(col) in values)
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        if self.db.fail_on and self.db.fail_on(self.table_name, self.op, self.payload):
            raise APIError({"message": "boom", "code": "XX000"})

        if self.op == "insert":
            created = []
            for item in (self.payload if isinstance(self.payload, list) else [self.payload]):
                row = dict(item)
                keys = UNIQUE_KEYS.get(self.table_name)
                if keys and any(all(r.get(k) == row.get(k) for k in keys) for r in rows):
                    raise APIError({"message": "duplicate key value violates unique constraint", "code": "23505"})
                row.setdefault("id", f"{self.table_name}-{next(self.db.ids)}")
                rows.append(row)
                created.append(dict(row))
            return SimpleNamespace(data=created)

        matched = [r for r in rows if self._matches(r)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in matched])
        if self.op == "delete":
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=[dict(r) for r in matched])
        if self._limit is not None:
            matched = matched[: self._limit]
        return SimpleNamespace(data=[dict(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.ids = itertools.count(1)
        # (table, op, payload) -> True pour simuler une erreur base
        self.fail_on = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """Base en mémoire avec contrainte unique (user_id, course_id) sur les inscriptions et le panier."""
    db = FakeSupabase()
    monkeypatch.setattr("academy.infra.supabase_client.get_supabase", lambda: db)
    monkeypatch.setattr("academy.infra.supabase_client.get_service_supabase", lambda: db)
    return db

@pytest.fixture
def stripe_sessions(monkeypatch) -> Dict[str, Dict[str, Any]]:
    """Sessions Stripe simulées, lues par academy.payments.stripe_client.get_session."""
    sessions: Dict[str, Dict[str, Any]] = {}

    def _get_session(session_id, expand=None):
        if session_id not in sessions:
            raise RuntimeError(f"No such checkout.session: {session_id}")
        return sessions[session_id]

    monkeypatch.setattr("academy.payments.stripe_client.get_session", _get_session)
    return sessions
