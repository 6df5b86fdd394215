"""
Note Store: the persistence contract the engine is written against.

Two implementations:
- SqlNoteStore: SQLModel over the SQLite database configured in db.py
- MemoryNoteStore: dict-backed, for tests and throwaway sessions

`get` is a read with a side effect: it counts a view (view_count + 1,
last_viewed_at = now) in the same operation. Use `peek` for reads that
must not count.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable
from sqlmodel import select

from .db import session_scope
from .models import AppSettings, Note, now_local

# fields scan_range may be asked to order/bound on
RANGE_FIELDS = frozenset(
    {"created_at", "updated_at", "last_viewed_at", "next_review_at", "view_count"}
)

Predicate = Callable[[Note], bool]


@runtime_checkable
class NoteStore(Protocol):
    def get(self, note_id: str, now: Optional[datetime] = None) -> Optional[Note]: ...

    def peek(self, note_id: str) -> Optional[Note]: ...

    def put(self, note: Note) -> Note: ...

    def delete(self, note_id: str) -> bool: ...

    def scan(self, predicate: Predicate) -> list[Note]: ...

    def scan_range(self, field: str, lo: Any = None, hi: Any = None) -> list[Note]: ...

    def all(self) -> list[Note]: ...

    def load_settings(self) -> AppSettings: ...

    def save_settings(self, settings: AppSettings) -> AppSettings: ...


def _check_field(field: str) -> None:
    if field not in RANGE_FIELDS:
        raise ValueError(f"cannot range-scan on {field!r}")


def _copy(obj):
    return type(obj).model_validate(obj.model_dump())


class SqlNoteStore:
    """Note Store over SQLModel; one session per call."""

    def get(self, note_id: str, now: Optional[datetime] = None) -> Optional[Note]:
        with session_scope() as s:
            note = s.get(Note, note_id)
            if note is None:
                return None
            note.view_count += 1
            note.last_viewed_at = now or now_local()
            s.add(note)
            s.flush()
            s.refresh(note)
            return note

    def peek(self, note_id: str) -> Optional[Note]:
        with session_scope() as s:
            return s.get(Note, note_id)

    def put(self, note: Note) -> Note:
        with session_scope() as s:
            merged = s.merge(note)
            s.flush()
            s.refresh(merged)
            return merged

    def delete(self, note_id: str) -> bool:
        with session_scope() as s:
            note = s.get(Note, note_id)
            if note is None:
                return False
            s.delete(note)
            return True

    def scan(self, predicate: Predicate) -> list[Note]:
        return [n for n in self.all() if predicate(n)]

    def scan_range(self, field: str, lo: Any = None, hi: Any = None) -> list[Note]:
        _check_field(field)
        column = getattr(Note, field)
        with session_scope() as s:
            stmt = select(Note)
            if lo is not None:
                stmt = stmt.where(column >= lo)
            if hi is not None:
                stmt = stmt.where(column <= hi)
            stmt = stmt.order_by(column.asc())
            return list(s.exec(stmt))

    def all(self) -> list[Note]:
        with session_scope() as s:
            return list(s.exec(select(Note).order_by(Note.updated_at.desc())))

    def load_settings(self) -> AppSettings:
        with session_scope() as s:
            settings = s.get(AppSettings, "main")
            if settings is None:
                settings = AppSettings()
                s.add(settings)
                s.flush()
                s.refresh(settings)
            return settings

    def save_settings(self, settings: AppSettings) -> AppSettings:
        settings.id = "main"
        with session_scope() as s:
            merged = s.merge(settings)
            s.flush()
            s.refresh(merged)
            return merged


class MemoryNoteStore:
    """In-memory Note Store. Hands out copies so callers can't mutate stored rows."""

    def __init__(self, notes: Optional[list[Note]] = None):
        self._notes: dict[str, Note] = {}
        self._settings: Optional[AppSettings] = None
        self.calls = 0  # store round-trips, handy for assertions
        for note in notes or []:
            self._notes[note.id] = _copy(note)

    def get(self, note_id: str, now: Optional[datetime] = None) -> Optional[Note]:
        self.calls += 1
        note = self._notes.get(note_id)
        if note is None:
            return None
        note.view_count += 1
        note.last_viewed_at = now or now_local()
        return _copy(note)

    def peek(self, note_id: str) -> Optional[Note]:
        self.calls += 1
        note = self._notes.get(note_id)
        return _copy(note) if note is not None else None

    def put(self, note: Note) -> Note:
        self.calls += 1
        self._notes[note.id] = _copy(note)
        return _copy(note)

    def delete(self, note_id: str) -> bool:
        self.calls += 1
        return self._notes.pop(note_id, None) is not None

    def scan(self, predicate: Predicate) -> list[Note]:
        self.calls += 1
        return [_copy(n) for n in self._notes.values() if predicate(n)]

    def scan_range(self, field: str, lo: Any = None, hi: Any = None) -> list[Note]:
        _check_field(field)
        self.calls += 1
        hits = []
        for n in self._notes.values():
            value = getattr(n, field)
            if value is None:
                continue
            if lo is not None and value < lo:
                continue
            if hi is not None and value > hi:
                continue
            hits.append(n)
        hits.sort(key=lambda n: getattr(n, field))
        return [_copy(n) for n in hits]

    def all(self) -> list[Note]:
        self.calls += 1
        notes = sorted(self._notes.values(), key=lambda n: n.updated_at, reverse=True)
        return [_copy(n) for n in notes]

    def load_settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = AppSettings()
        return _copy(self._settings)

    def save_settings(self, settings: AppSettings) -> AppSettings:
        settings.id = "main"
        self._settings = _copy(settings)
        return _copy(settings)
