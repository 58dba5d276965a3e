from datetime import timedelta

from fastapi.testclient import TestClient
from jose import JWTError
import pytest

from journal.main import app
from journal.utils.security import verify_access_token
from conftest import issue_token, seed_article

client = TestClient(app)


def _bearer(uid, **kwargs):
    return {"Authorization": f"Bearer {issue_token(uid, **kwargs)}"}


def test_token_round_trip():
    payload = verify_access_token(issue_token("writer-1"))
    assert payload["sub"] == "writer-1"
    assert payload["type"] == "access"


def test_expired_token_rejected():
    token = issue_token("writer-1", expires_delta=timedelta(minutes=-1))
    with pytest.raises(JWTError):
        verify_access_token(token)


def test_refresh_token_is_not_an_access_token():
    with pytest.raises(JWTError):
        verify_access_token(issue_token("writer-1", token_type="refresh"))


def test_bearer_token_resolves_stored_user(dummy_db):
    dummy_db.collection("users").document("writer-1").set({"email": "w@footballjournal.org", "role": "writer"})
    seed_article(dummy_db, "d1", "Draft", status="draft", author="writer-1")

    assert client.get("/api/articles/d1").status_code == 403
    assert client.get("/api/articles/d1", headers=_bearer("writer-1")).status_code == 200


def test_unknown_user_is_unauthorized(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    r = client.post("/api/articles/a1/like", headers=_bearer("ghost"))
    assert r.status_code == 401


def test_invalid_token_treated_as_anonymous_on_public_routes(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    r = client.get("/api/articles/a1", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 200
    assert r.json()["isLikedByCurrentUser"] is False


def test_health_endpoints():
    assert client.get("/").json()["status"] == "online"
    assert client.get("/health").json()["status"] == "healthy"
