"""
JSON backup format.

    {"notes": [...], "settings": {...}, "exportedAt": "<ISO-8601>"}

Note and settings keys are camelCase; timestamps are ISO-8601 strings.
Import is per record: a bad note is counted and skipped, a bad document
(unparseable JSON, wrong top-level shape, bad settings) fails the whole
import before anything is written.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError

from .errors import ImportFormatError
from .models import AppSettings, Note, normal_tags, now_local
from .store import NoteStore

logger = logging.getLogger(__name__)

SQLITE_INT_MAX = 2**63 - 1
# timedelta(days=...) tops out at 999999999
MAX_INTERVAL_DAYS = 999_999_999


def _local_naive(value: Optional[datetime]) -> Optional[datetime]:
    # "…Z" / offset timestamps from other exporters become local wall time
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class NoteRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    title: str = ""
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    last_viewed_at: datetime = Field(alias="lastViewedAt")
    view_count: int = Field(default=1, ge=1, le=SQLITE_INT_MAX, alias="viewCount")
    memorize: bool = False
    next_review_at: Optional[datetime] = Field(default=None, alias="nextReviewAt")
    review_interval: Optional[int] = Field(default=None, ge=1, le=MAX_INTERVAL_DAYS, alias="reviewInterval")
    ease_factor: Optional[float] = Field(default=None, ge=1.3, allow_inf_nan=False, alias="easeFactor")

    @field_validator("created_at", "updated_at", "last_viewed_at", "next_review_at")
    @classmethod
    def _naive(cls, v):
        return _local_naive(v)

    @classmethod
    def from_note(cls, note: Note) -> "NoteRecord":
        return cls(
            id=note.id, title=note.title, content=note.content, tags=note.tags,
            created_at=note.created_at, updated_at=note.updated_at,
            last_viewed_at=note.last_viewed_at, view_count=note.view_count,
            memorize=note.memorize, next_review_at=note.next_review_at,
            review_interval=note.review_interval, ease_factor=note.ease_factor,
        )

    def to_note(self) -> Note:
        note = Note(
            id=self.id, title=self.title, content=self.content,
            created_at=self.created_at, updated_at=self.updated_at,
            last_viewed_at=self.last_viewed_at, view_count=self.view_count,
            memorize=self.memorize, next_review_at=self.next_review_at,
            review_interval=self.review_interval, ease_factor=self.ease_factor,
        )
        note.tags_csv = ",".join(normal_tags(self.tags))
        return note


class SettingsRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    theme: str = Field(default="dark", pattern="^(light|dark)$")
    show_resurface_on_open: bool = Field(default=True, alias="showResurfaceOnOpen")
    resurface_count: int = Field(default=2, ge=0, alias="resurfaceCount")


@dataclass
class ImportResult:
    imported: int = 0
    errors: int = 0


def export_data(store: NoteStore, now: Optional[datetime] = None) -> str:
    notes = [NoteRecord.from_note(n).model_dump(mode="json", by_alias=True) for n in store.all()]
    s = store.load_settings()
    settings = SettingsRecord(
        theme=s.theme,
        show_resurface_on_open=s.show_resurface_on_open,
        resurface_count=s.resurface_count,
    ).model_dump(mode="json", by_alias=True)
    payload = {
        "notes": notes,
        "settings": settings,
        "exportedAt": (now or now_local()).isoformat(),
    }
    return json.dumps(payload, indent=2)


def _parse_document(text: str | bytes) -> tuple[list[Any], Optional[SettingsRecord]]:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ImportFormatError("Invalid backup: not UTF-8 text") from e
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError("Invalid JSON format") from e
    if not isinstance(data, dict):
        raise ImportFormatError("Invalid JSON format: expected an object")

    notes = data.get("notes")
    if not isinstance(notes, list):
        notes = []

    settings = None
    if data.get("settings"):
        try:
            settings = SettingsRecord.model_validate(data["settings"])
        except ValidationError as e:
            raise ImportFormatError(f"Invalid settings: {e}") from e
    return notes, settings


def import_data(store: NoteStore, text: str | bytes) -> ImportResult:
    """Insert-or-replace every valid note; count the ones that fail."""
    raw_notes, settings = _parse_document(text)

    result = ImportResult()
    for i, raw in enumerate(raw_notes):
        try:
            record = NoteRecord.model_validate(raw)
        except ValidationError as e:
            result.errors += 1
            logger.warning("skipping note #%d: %s", i, e.errors()[0]["msg"] if e.errors() else e)
            continue
        try:
            store.put(record.to_note())
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            result.errors += 1
            logger.warning("skipping note #%d (%s): store rejected it: %s", i, record.id, e)
            continue
        result.imported += 1

    if settings is not None:
        store.save_settings(AppSettings(
            id="main",
            theme=settings.theme,
            show_resurface_on_open=settings.show_resurface_on_open,
            resurface_count=settings.resurface_count,
        ))

    logger.info("imported %d notes (%d errors)", result.imported, result.errors)
    return result
