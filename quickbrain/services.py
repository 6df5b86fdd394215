from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional
import logging

from .errors import NoteNotFoundError
from .models import AppSettings, Note, normal_tags, now_local
from .store import NoteStore

logger = logging.getLogger(__name__)

SORTS = ("updated", "created", "title")
THEMES = ("light", "dark")


def create_note(
    store: NoteStore,
    title: str = "",
    content: str = "",
    tags: Optional[Iterable[str]] = None,
    memorize: bool = False,
    now: Optional[datetime] = None,
) -> Note:
    now = now or now_local()
    note = Note(
        title=title, content=content,
        created_at=now, updated_at=now, last_viewed_at=now, view_count=1,
    )
    note.set_tags(tags)
    if memorize:
        note.set_memorize(True, now)
    note = store.put(note)
    logger.info("created note %s", note.id)
    return note


def list_notes(
    store: NoteStore,
    tag: Optional[str] = None,
    sort: str = "updated",  # "updated" | "created" | "title"
) -> list[Note]:
    """
    Return notes with optional tag filtering and sorting.
    - tag: exact match against the normalized tags
    - sort: updated|created|title
    """
    if sort not in SORTS:
        raise ValueError(f"sort must be one of {', '.join(SORTS)}")
    if tag:
        tag = tag.strip().lower()
        notes = store.scan(lambda n: tag in n.tags)
    else:
        notes = store.all()

    if sort == "created":
        notes.sort(key=lambda n: n.created_at, reverse=True)
    elif sort == "title":
        notes.sort(key=lambda n: n.title.lower())
    else:
        notes.sort(key=lambda n: n.updated_at, reverse=True)
    return notes


def open_note(store: NoteStore, note_id: str, now: Optional[datetime] = None) -> Optional[Note]:
    """Fetch a note for reading. Counts as a view."""
    return store.get(note_id, now)


def peek_note(store: NoteStore, note_id: str) -> Optional[Note]:
    """Fetch a note without counting a view."""
    return store.peek(note_id)


def edit_note(
    store: NoteStore,
    note_id: str,
    *,
    title: Optional[str] = None,
    content: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    memorize: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> Note:
    """
    Update fields and bump updated_at. Returns the updated note.
    """
    now = now or now_local()
    note = store.peek(note_id)
    if not note:
        raise NoteNotFoundError(note_id)

    if title is not None:
        note.title = title
    if content is not None:
        note.content = content
    if tags is not None:
        note.set_tags(tags)
    if memorize is not None:
        note.set_memorize(memorize, now)

    note.touch(now)
    return store.put(note)


def set_memorize(store: NoteStore, note_id: str, value: bool = True) -> Note:
    return edit_note(store, note_id, memorize=value)


def delete_note(store: NoteStore, note_id: str) -> None:
    """Hard delete; there is no archive or tombstone."""
    if not store.delete(note_id):
        raise NoteNotFoundError(note_id)
    logger.info("deleted note %s", note_id)


def all_tags(store: NoteStore) -> list[str]:
    found: set[str] = set()
    for n in store.all():
        found.update(n.tags)
    return sorted(found)


def get_settings(store: NoteStore) -> AppSettings:
    return store.load_settings()


def update_settings(
    store: NoteStore,
    *,
    theme: Optional[str] = None,
    show_resurface_on_open: Optional[bool] = None,
    resurface_count: Optional[int] = None,
) -> AppSettings:
    settings = store.load_settings()
    if theme is not None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        settings.theme = theme
    if show_resurface_on_open is not None:
        settings.show_resurface_on_open = show_resurface_on_open
    if resurface_count is not None:
        if resurface_count < 0:
            raise ValueError("resurface_count must not be negative")
        settings.resurface_count = resurface_count
    return store.save_settings(settings)
