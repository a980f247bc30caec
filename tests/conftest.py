"""
Shared fixtures for the API tests.

The Supabase client is replaced with an in-memory fake that understands the
subset of the postgrest query builder, auth, storage and rpc calls the
services make. Stripe, SMTP and Twilio are patched per test.
"""

import copy
import re
import uuid
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from magaza.config import settings
from magaza.core.dependencies import get_current_user, get_optional_user
from magaza.core.rate_limit import limiter
from magaza.database.supabase_client import CODE_VERIFIER_KEY, get_supabase, get_service_supabase, get_auth_client
from magaza.main import app
from magaza.modules.auth.service import clear_auth_cache
from magaza.modules.categories.service import invalidate_category_stats_cache


class FakeResponse:
    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data
        self.count = count


def _like(pattern: str, value: Any) -> bool:
    """Postgres ILIKE: `%` any run, `_` any one character, backslash escapes the next character."""
    if value is None:
        return False
    regex = ""
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            regex += re.escape(next(chars, "\\"))
        elif char == "%":
            regex += ".*"
        elif char == "_":
            regex += "."
        else:
            regex += re.escape(char)
    return re.fullmatch(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


class FakeQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.filters: List = []
        self.count_mode: Optional[str] = None
        self.order_by: Optional[tuple] = None
        self.row_limit: Optional[int] = None
        self.row_range: Optional[tuple] = None
        self.single_row = False
        self.on_conflict = "id"

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.count_mode = count
        return self

    def insert(self, rows):
        self.action, self.payload = "insert", rows
        return self

    def update(self, values):
        self.action, self.payload = "update", values
        return self

    def upsert(self, rows, on_conflict: str = "id"):
        self.action, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def ilike(self, column, pattern):
        self.filters.append(lambda row: _like(pattern, row.get(column)))
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def range(self, start: int, end: int):
        self.row_range = (start, end)
        return self

    def maybe_single(self):
        self.single_row = True
        return self

    def _matches(self, row) -> bool:
        return all(check(row) for check in self.filters)

    def execute(self):
        key = (self.table_name, self.action)
        failure = self.db.failures_once.pop(key, None) or self.db.failures.get(key)
        if failure is not None:
            raise failure
        rows = self.db.tables.setdefault(self.table_name, [])
        handler = getattr(self, f"_run_{self.action}")
        return handler(rows)

    def _run_select(self, rows):
        matched = [copy.deepcopy(r) for r in rows if self._matches(r)]
        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
        total = len(matched)
        if self.row_range is not None:
            start, end = self.row_range
            matched = matched[start:end + 1]
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        if self.db.max_rows is not None:
            matched = matched[:self.db.max_rows]
        if self.single_row:
            return FakeResponse(matched[0] if matched else None)
        return FakeResponse(matched, total if self.count_mode else None)

    def _run_insert(self, rows):
        new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for new_row in new_rows:
            row = copy.deepcopy(new_row)
            row.setdefault("id", str(uuid.uuid4()))
            rows.append(row)
            inserted.append(copy.deepcopy(row))
        return FakeResponse(inserted)

    def _run_update(self, rows):
        updated = []
        for row in rows:
            if self._matches(row):
                row.update(copy.deepcopy(self.payload))
                updated.append(copy.deepcopy(row))
        return FakeResponse(updated)

    def _run_upsert(self, rows):
        new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
        written = []
        for new_row in new_rows:
            key = self.on_conflict
            existing = next((r for r in rows if key in new_row and r.get(key) == new_row[key]), None)
            if existing is not None:
                existing.update(copy.deepcopy(new_row))
                written.append(copy.deepcopy(existing))
            else:
                row = copy.deepcopy(new_row)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                written.append(copy.deepcopy(row))
        return FakeResponse(written)

    def _run_delete(self, rows):
        removed = [r for r in rows if self._matches(r)]
        rows[:] = [r for r in rows if not self._matches(r)]
        return FakeResponse(removed)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        failure = self.db.failures.get(("rpc", self.name))
        if failure is not None:
            raise failure
        handler = self.db.rpc_handlers.get(self.name)
        return FakeResponse(handler(self.params) if handler else None)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        self.storage.uploads.append((self.name, path, file, file_options or {}))
        return {"path": path}

    def create_signed_url(self, path, expires_in):
        return {"signedURL": f"https://storage.test/{self.name}/{path}?token=signed&expires={expires_in}"}

    def get_public_url(self, path):
        return f"https://storage.test/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.buckets: Dict[str, Dict[str, Any]] = {}
        self.uploads: List = []

    def from_(self, name: str) -> FakeBucket:
        return FakeBucket(self, name)

    def get_bucket(self, name: str):
        if name not in self.buckets:
            raise Exception("Bucket not found")
        return SimpleNamespace(name=name, **self.buckets[name])

    def create_bucket(self, name: str, options=None):
        self.buckets[name] = dict(options or {})
        return {"name": name}

    def update_bucket(self, name: str, options):
        self.buckets.setdefault(name, {}).update(options)
        return {"message": "Successfully updated"}


def make_user(user_id: Optional[str] = None, email: str = "user@example.com", **extra) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id or str(uuid.uuid4()),
        email=email,
        user_metadata=extra.pop("user_metadata", {}),
        app_metadata=extra.pop("app_metadata", {}),
        email_confirmed_at=extra.pop("email_confirmed_at", None),
        created_at=extra.pop("created_at", "2024-01-01T00:00:00+00:00"),
        **extra,
    )


class FakeAuthAdmin:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth

    def list_users(self):
        return list(self.auth.users.values())

    def delete_user(self, user_id):
        self.auth.users.pop(user_id, None)

    def sign_out(self, token):
        self.auth.signed_out.append(token)

    def update_user_by_id(self, user_id, attributes):
        user = self.auth.users.get(user_id)
        return SimpleNamespace(user=user)


class FakeAuthStorage:
    """Client-side storage the PKCE flow writes its code verifier to."""

    def __init__(self):
        self.items: Dict[str, str] = {}

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.items[key] = value

    def remove_item(self, key):
        self.items.pop(key, None)


class FakeAuth:
    """Auth namespace; tokens map to users through `tokens`, auth codes to (session, verifier) through `sessions`."""

    def __init__(self, storage: FakeAuthStorage):
        self.storage = storage
        self.users: Dict[str, SimpleNamespace] = {}
        self.tokens: Dict[str, str] = {}
        self.signed_out: List[str] = []
        self.sessions: Dict[str, tuple] = {}
        self.sign_up_error: Optional[Exception] = None
        self.admin = FakeAuthAdmin(self)

    def _issue_verifier(self) -> str:
        verifier = f"verifier-{uuid.uuid4().hex}"
        self.storage.set_item(CODE_VERIFIER_KEY, verifier)
        return verifier

    def add_session(self, code: str, session, verifier: str = "verifier-1") -> None:
        self.sessions[code] = (session, verifier)

    def add_user(self, email: str, token: Optional[str] = None, **extra) -> SimpleNamespace:
        user = make_user(email=email, **extra)
        self.users[user.id] = user
        if token:
            self.tokens[token] = user.id
        return user

    def get_user(self, jwt=None):
        user_id = self.tokens.get(jwt)
        if not user_id:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=self.users[user_id])

    def sign_up(self, credentials):
        if self.sign_up_error is not None:
            raise self.sign_up_error
        user = self.add_user(credentials["email"], user_metadata=credentials["options"]["data"])
        self._issue_verifier()
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials):
        user = next((u for u in self.users.values() if u.email == credentials["email"]), None)
        if user is None or credentials["password"] != "Dogru.Sifre1":
            raise Exception("Invalid login credentials")
        session = SimpleNamespace(access_token=f"token-{user.id}", refresh_token="refresh")
        return SimpleNamespace(user=user, session=session)

    def sign_in_with_oauth(self, credentials):
        provider = credentials["provider"]
        redirect_to = credentials["options"]["redirect_to"]
        self._issue_verifier()
        return SimpleNamespace(provider=provider, url=f"https://auth.test/authorize?provider={provider}&redirect_to={redirect_to}")

    def reset_password_for_email(self, email, options=None):
        self._issue_verifier()
        return None

    def exchange_code_for_session(self, params):
        code_verifier = params.get("code_verifier") or self.storage.get_item(CODE_VERIFIER_KEY)
        stored = self.sessions.get(params["auth_code"])
        if stored is None:
            raise Exception("invalid flow state, auth code expired")
        if not code_verifier:
            raise Exception("invalid request: both auth code and code verifier should be non-empty")
        session, verifier = stored
        if code_verifier != verifier:
            raise Exception("code challenge does not match previously saved code verifier")
        self.storage.remove_item(CODE_VERIFIER_KEY)
        return session


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[tuple, Exception] = {}
        self.failures_once: Dict[tuple, Exception] = {}
        self.rpc_calls: List = []
        self.rpc_handlers: Dict[str, Any] = {}
        # PostgREST max-rows; None means uncapped
        self.max_rows: Optional[int] = None
        self.options = SimpleNamespace(storage=FakeAuthStorage())
        self.auth = FakeAuth(self.options.storage)
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        stored = self.tables.setdefault(table, [])
        for row in rows:
            row = dict(row)
            row.setdefault("id", str(uuid.uuid4()))
            stored.append(row)
        return stored

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])


@pytest.fixture(autouse=True)
def reset_state():
    """Rate limits and module level caches must not leak between tests."""
    limiter.reset()
    clear_auth_cache()
    invalidate_category_stats_cache()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def client(db):
    """TestClient wired to the fake Supabase client for every client dependency."""
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_auth_client] = lambda: db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login_as(db):
    """Override the current user for the duration of a test."""

    def _login(user_id: Optional[str] = None, email: str = "user@example.com", **profile):
        user = {
            "id": user_id or str(uuid.uuid4()),
            "email": email,
            "user_metadata": {},
            "app_metadata": {},
        }
        if profile:
            db.seed("user_profiles", {"id": user["id"], "email": email, **profile})
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user

    return _login


@pytest.fixture
def admin_user(login_as):
    return login_as(email="admin@example.com", username="yonetici", role="admin", is_admin=True)


@pytest.fixture
def developer_user(login_as):
    return login_as(
        email="dev@example.com",
        username="gelistirici",
        is_developer=True,
        developer_approved=True,
    )


@pytest.fixture
def stripe_keys(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_123")
