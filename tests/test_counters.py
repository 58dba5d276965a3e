from fastapi.testclient import TestClient

from journal.main import app
from conftest import login_as, seed_article

client = TestClient(app)


def test_toggle_like_twice_restores_state(dummy_db, reader):
    seed_article(dummy_db, "a1", "Title", likes={"count": 4, "users": ["u1", "u2", "u3", "u4"]})
    login_as(reader)

    first = client.post("/api/articles/a1/like")
    assert first.json() == {"liked": True, "totalLikes": 5}
    second = client.post("/api/articles/a1/like")
    assert second.json() == {"liked": False, "totalLikes": 4}

    likes = dummy_db.collection("articles")._store["a1"]["likes"]
    assert likes["count"] == 4
    assert reader.uid not in likes["users"]


def test_like_requires_authentication(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    assert client.post("/api/articles/a1/like").status_code in (401, 403)


def test_like_missing_article(dummy_db, reader):
    login_as(reader)
    assert client.post("/api/articles/nope/like").status_code == 404


def test_article_likes_listing(dummy_db):
    seed_article(dummy_db, "a1", "Title", likes={"count": 2, "users": ["u1", "u2"]})
    r = client.get("/api/articles/a1/likes")
    assert r.json() == {"users": ["u1", "u2"], "count": 2}


def test_share_increments_platform(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    r = client.post("/api/articles/a1/share", json={"platform": "twitter"})
    assert r.status_code == 200
    shares = r.json()["shares"]
    assert shares["count"] == 1
    assert shares["platforms"]["twitter"] == 1
    assert shares["platforms"]["facebook"] == 0


def test_share_invalid_platform_changes_nothing(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    before = dummy_db.collection("articles")._store["a1"]["shares"]

    r = client.post("/api/articles/a1/share", json={"platform": "myspace"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "platform"
    assert dummy_db.collection("articles")._store["a1"]["shares"] == before


def test_share_missing_article(dummy_db):
    r = client.post("/api/articles/nope/share", json={"platform": "facebook"})
    assert r.status_code == 404


def test_views_accumulate(dummy_db):
    seed_article(dummy_db, "a1", "Title")
    for _ in range(3):
        client.get("/api/articles/a1")
    assert dummy_db.collection("articles")._store["a1"]["views"] == 3
