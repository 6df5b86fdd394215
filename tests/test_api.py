import asyncio
import json
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from quickbrain.app import app, get_store
from quickbrain.models import now_local
from quickbrain.services import update_settings
from quickbrain.store import MemoryNoteStore

from conftest import make_note


@pytest.fixture()
def mem():
    return MemoryNoteStore()


@pytest.fixture()
def client(mem):
    app.dependency_overrides[get_store] = lambda: mem
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_open_edit_delete(client):
    r = client.post("/api/notes", json={"title": "Hello", "content": "world", "tags": ["A", "b", "a"]})
    assert r.status_code == 201
    note = r.json()
    assert note["tags"] == ["a", "b"]
    assert note["view_count"] == 1
    assert note["freshness_label"] == "Fresh"

    r = client.get(f"/api/notes/{note['id']}")
    assert r.status_code == 200
    assert r.json()["view_count"] == 2

    r = client.patch(f"/api/notes/{note['id']}", json={"title": "Hi", "memorize": True})
    assert r.status_code == 200
    assert r.json()["title"] == "Hi"
    assert r.json()["ease_factor"] == 2.5

    assert client.delete(f"/api/notes/{note['id']}").json() == {"ok": True}
    assert client.get(f"/api/notes/{note['id']}").status_code == 404
    assert client.delete(f"/api/notes/{note['id']}").status_code == 404
    assert client.patch(f"/api/notes/{note['id']}", json={"title": "x"}).status_code == 404


def test_list_and_tags(client, mem):
    make_note(mem, "beta", tags=["work"])
    make_note(mem, "alpha", tags=["home", "work"])
    r = client.get("/api/notes", params={"sort": "title"})
    assert [n["title"] for n in r.json()] == ["alpha", "beta"]
    r = client.get("/api/notes", params={"tag": "home"})
    assert [n["title"] for n in r.json()] == ["alpha"]
    assert client.get("/api/notes", params={"sort": "bogus"}).status_code == 422
    assert client.get("/api/tags").json() == ["home", "work"]


def test_search(client, mem):
    make_note(mem, "Concatenate")
    make_note(mem, "dog", tags=["category"])
    make_note(mem, "unrelated")
    r = client.get("/api/search", params={"q": "CAT"})
    assert sorted(n["title"] for n in r.json()) == ["Concatenate", "dog"]
    assert client.get("/api/search", params={"q": "  "}).json() == []


def test_resurface_uses_settings_default(client, mem):
    now = now_local()
    for i in range(4):
        make_note(mem, f"old{i}", created=now - timedelta(days=30), viewed=now - timedelta(days=10))
    make_note(mem, "recent", created=now, viewed=now)

    assert len(client.get("/api/resurface").json()) == 2
    update_settings(mem, resurface_count=3)
    titles = [n["title"] for n in client.get("/api/resurface").json()]
    assert len(titles) == 3 and "recent" not in titles
    assert len(client.get("/api/resurface", params={"limit": 10}).json()) == 4


def test_on_this_day(client, mem):
    now = now_local()
    make_note(mem, "last week", created=now - timedelta(days=7))
    r = client.get("/api/on-this-day")
    assert r.status_code == 200
    periods = r.json()
    assert [p["period"] for p in periods] == ["1 week ago"]
    assert [n["title"] for n in periods[0]["notes"]] == ["last week"]


def test_serendipity(client, mem):
    make_note(mem, "one")
    assert client.get("/api/serendipity").status_code == 404
    make_note(mem, "two")
    pair = client.get("/api/serendipity").json()
    assert len(pair) == 2
    assert pair[0]["id"] != pair[1]["id"]


def test_review_flow(client, mem):
    card = client.post("/api/notes", json={"title": "card", "memorize": True}).json()
    client.post("/api/notes", json={"title": "plain"})

    due = client.get("/api/review/due").json()
    assert [n["id"] for n in due] == [card["id"]]

    r = client.post(f"/api/review/{card['id']}", json={"quality": 5})
    assert r.status_code == 200
    assert r.json()["review_interval"] == 1
    assert r.json()["ease_factor"] == pytest.approx(2.6)
    assert client.get("/api/review/due").json() == []

    assert client.post(f"/api/review/{card['id']}", json={"quality": 7}).status_code == 422
    assert client.post("/api/review/missing", json={"quality": 4}).status_code == 404


def test_settings(client):
    assert client.get("/api/settings").json() == {
        "theme": "dark", "show_resurface_on_open": True, "resurface_count": 2,
    }
    r = client.patch("/api/settings", json={"theme": "light"})
    assert r.json()["theme"] == "light"
    assert client.patch("/api/settings", json={"theme": "neon"}).status_code == 400


def test_export_import(client, mem):
    make_note(mem, "keep me", tags=["x"])
    exported = client.get("/api/export")
    assert exported.status_code == 200
    doc = exported.json()
    assert [n["title"] for n in doc["notes"]] == ["keep me"]

    doc["notes"].append({"id": "broken"})
    r = client.post("/api/import", content=json.dumps(doc))
    assert r.json() == {"imported": 1, "errors": 1}

    assert client.post("/api/import", content="{oops").status_code == 400


def test_import_rejects_invalid_utf8(client, mem):
    r = client.post("/api/import", content=b"\xff\xfe{")
    assert r.status_code == 400
    assert "UTF-8" in r.json()["detail"]
    assert mem.all() == []


class _LoopCheckingStore(MemoryNoteStore):
    def put(self, note):
        self.on_loop = True
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.on_loop = False
        return super().put(note)


def test_import_runs_off_the_event_loop():
    target = _LoopCheckingStore()
    app.dependency_overrides[get_store] = lambda: target
    try:
        doc = {"notes": [{
            "id": "n1", "createdAt": "2026-01-01T10:00:00", "updatedAt": "2026-01-01T10:00:00",
            "lastViewedAt": "2026-01-01T10:00:00",
        }]}
        r = TestClient(app).post("/api/import", content=json.dumps(doc))
    finally:
        app.dependency_overrides.clear()
    assert r.json() == {"imported": 1, "errors": 0}
    assert target.on_loop is False
