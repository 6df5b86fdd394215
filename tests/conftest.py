from datetime import datetime, timedelta

import pytest

from quickbrain.db import init_db, reset_engine
from quickbrain.models import Note
from quickbrain.store import MemoryNoteStore

NOW = datetime(2026, 3, 31, 12, 0, 0)


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def store():
    return MemoryNoteStore()


@pytest.fixture()
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("QUICKBRAIN_DB_PATH", str(tmp_path / "quickbrain.sqlite"))
    reset_engine()
    init_db()
    yield
    reset_engine()


def make_note(store, title="", content="", tags=(), *, created=NOW, viewed=None, **fields) -> Note:
    note = Note(
        title=title, content=content,
        created_at=created, updated_at=created,
        last_viewed_at=viewed or created,
        **fields,
    )
    note.set_tags(tags)
    return store.put(note)


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)
