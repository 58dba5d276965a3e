import copy
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest
from google.api_core.exceptions import NotFound
from google.cloud.firestore import ArrayRemove, ArrayUnion, DELETE_FIELD, Increment
from jose import jwt
from slugify import slugify

from journal.config import settings
from journal.main import app
from journal.dependencies import get_current_user, get_email_client, get_optional_user
from journal.models.article import Article, article_model_to_firestore
from journal.models.user import User, UserRole
from journal.services.email_service import EmailClient, EmailConfig
from journal.services.file_service import file_service
from journal.services.firebase_service import firebase_service
import journal.services.article_repository as repo_mod

_MISSING = object()


# ============================================
# IN-MEMORY FIRESTORE
# ============================================

def _get_path(data: Dict[str, Any], path: str):
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _apply_update(data: Dict[str, Any], fields: Dict[str, Any]) -> None:
    for path, value in fields.items():
        parts = path.split(".")
        parent = data
        for part in parts[:-1]:
            parent = parent.setdefault(part, {})
        key = parts[-1]
        current = parent.get(key)
        if value is DELETE_FIELD:
            parent.pop(key, None)
        elif isinstance(value, Increment):
            parent[key] = (current or 0) + value.value
        elif isinstance(value, ArrayUnion):
            items = list(current or [])
            items.extend(v for v in value.values if v not in items)
            parent[key] = items
        elif isinstance(value, ArrayRemove):
            parent[key] = [v for v in (current or []) if v not in value.values]
        else:
            parent[key] = copy.deepcopy(value)


def _matches(data: Dict[str, Any], field: str, op: str, value: Any) -> bool:
    current = _get_path(data, field)
    if current is _MISSING:
        return False
    if op == "==":
        return current == value
    if op == "in":
        return current in value
    if op == "array_contains":
        return isinstance(current, list) and value in current
    if op == "array_contains_any":
        return isinstance(current, list) and any(v in current for v in value)
    raise NotImplementedError(op)


class DummyDoc:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class DummyDocRef:
    def __init__(self, coll, doc_id):
        self.coll = coll
        self.id = doc_id

    def set(self, data):
        self.coll._store[self.id] = copy.deepcopy(data)

    def get(self, transaction=None):
        return DummyDoc(self, self.coll._store.get(self.id))

    def update(self, fields):
        if self.id not in self.coll._store:
            raise NotFound(f"No document to update: {self.id}")
        _apply_update(self.coll._store[self.id], fields)

    def delete(self):
        self.coll._store.pop(self.id, None)


class DummyQuery:
    def __init__(self, coll, filters=(), orders=(), skip=0, take=None):
        self.coll = coll
        self.filters = list(filters)
        self.orders = list(orders)
        self.skip = skip
        self.take = take

    def _copy(self, **changes):
        q = DummyQuery(self.coll, self.filters, self.orders, self.skip, self.take)
        for k, v in changes.items():
            setattr(q, k, v)
        return q

    def where(self, field, op, value):
        return self._copy(filters=self.filters + [(field, op, value)])

    def order_by(self, field, direction="ASCENDING"):
        return self._copy(orders=self.orders + [(field, direction)])

    def offset(self, n):
        return self._copy(skip=n)

    def limit(self, n):
        return self._copy(take=n)

    def stream(self):
        rows = [
            (doc_id, data) for doc_id, data in self.coll._store.items()
            if all(_matches(data, f, op, v) for f, op, v in self.filters)
        ]
        for field, direction in reversed(self.orders):
            def key(row, field=field):
                value = _get_path(row[1], field)
                value = None if value is _MISSING else value
                return (value is not None, value if value is not None else 0)
            rows.sort(key=key, reverse=direction == "DESCENDING")
        rows = rows[self.skip:]
        if self.take is not None:
            rows = rows[:self.take]
        for doc_id, data in rows:
            yield DummyDoc(DummyDocRef(self.coll, doc_id), data)


class DummyCollection(DummyQuery):
    def __init__(self):
        self._store: Dict[str, Dict[str, Any]] = {}
        self._counter = 0
        super().__init__(self)

    def document(self, doc_id=None):
        if doc_id is None:
            self._counter += 1
            doc_id = f"doc_{self._counter}"
        return DummyDocRef(self, doc_id)


class DummyTransaction:
    def update(self, ref, fields):
        ref.update(fields)

    def set(self, ref, data):
        ref.set(data)


class DummyDB:
    def __init__(self):
        self.collections: Dict[str, DummyCollection] = {}

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = DummyCollection()
        return self.collections[name]

    def transaction(self):
        return DummyTransaction()


# ============================================
# FIXTURES
# ============================================

@pytest.fixture(autouse=True)
def dummy_db(monkeypatch, tmp_path):
    db = DummyDB()
    firebase_service.db = db
    # Transactions run inline against the in-memory store
    monkeypatch.setattr(repo_mod, "transactional", lambda fn: fn)
    monkeypatch.setattr(file_service, "upload_dir", tmp_path / "uploads")
    yield db
    firebase_service.db = None
    app.dependency_overrides.clear()


@pytest.fixture
def email_outbox():
    """Every Brevo request the app makes, as parsed JSON payloads."""
    sent: List[Dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(201, json={"messageId": f"m{len(sent)}"})

    config = EmailConfig(api_key="test-key", sender_email="desk@footballjournal.org")
    client = EmailClient(config, transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_email_client] = lambda: client
    return sent


@pytest.fixture
def writer():
    return User(uid="writer-1", email="writer@footballjournal.org", name="Wri Ter",
                role=UserRole.WRITER, profileImage="/uploads/profile/writer.jpg")


@pytest.fixture
def other_writer():
    return User(uid="writer-2", email="second@footballjournal.org", role=UserRole.WRITER)


@pytest.fixture
def admin():
    return User(uid="admin-1", email="admin@footballjournal.org", role=UserRole.ADMIN)


@pytest.fixture
def reader():
    return User(uid="reader-1", email="reader@footballjournal.org", role=UserRole.USER)


def issue_token(uid: str, expires_delta: Optional[timedelta] = None, token_type: str = "access") -> str:
    """Sign a bearer token the way the auth service does."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": uid,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
        "type": token_type,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def login_as(user: Optional[User]) -> None:
    """Authenticate every following request as ``user`` (None for anonymous)."""
    app.dependency_overrides[get_optional_user] = lambda: user
    if user is None:
        app.dependency_overrides.pop(get_current_user, None)
    else:
        app.dependency_overrides[get_current_user] = lambda: user


# ============================================
# DATA BUILDERS
# ============================================

def translation(title, excerpt="An excerpt", body="Body text", blocks=None):
    return {
        "title": title,
        "excerpt": excerpt,
        "content": blocks if blocks is not None else [{"type": "paragraph", "content": body}],
    }


def translations_payload(en_title, ar_title=None, fr_title=None, **kwargs):
    data = {
        "en": translation(en_title, **kwargs),
        "ar": translation(ar_title or f"{en_title} بالعربية"),
    }
    if fr_title:
        data["fr"] = translation(fr_title)
    return data


def seed_article(
    db,
    article_id: str,
    en_title: str,
    *,
    status: str = "published",
    category: str = "etoile-du-sahel",
    en_excerpt: str = "An excerpt",
    en_body: str = "Body text",
    ar_excerpt: str = "مقتطف",
    tags=(),
    author: str = "writer-1",
    published_at: Optional[datetime] = None,
    likes: Optional[Dict[str, Any]] = None,
    image: str = "/uploads/articles/main.jpg",
) -> str:

    if published_at is None and status == "published":
        published_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
    article = Article(
        id=article_id,
        translations={
            "en": translation(en_title, excerpt=en_excerpt, body=en_body),
            "ar": translation(f"عنوان {article_id}", excerpt=ar_excerpt, body="نص"),
        },
        author=author,
        authorImage="/uploads/profile/default.jpg",
        image=image,
        category=category,
        status=status,
        publishedAt=published_at,
        tags=list(tags),
        slug=slugify(en_title),
        likes=likes or {"count": 0, "users": []},
    )
    db.collection("articles").document(article_id).set(article_model_to_firestore(article))
    return article_id
