# quickbrain/app.py
from __future__ import annotations
from typing import Optional
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field

from quickbrain.db import init_db
from quickbrain.errors import ImportFormatError, InvalidQualityError, NoteNotFoundError
from quickbrain.freshness import freshness, freshness_label
from quickbrain.log import configure_logging
from quickbrain.review import due_notes, rate_note
from quickbrain.selection import mash, on_this_day, resurface, search
from quickbrain.services import (
    all_tags, create_note, delete_note, edit_note, get_settings,
    list_notes, open_note, update_settings,
)
from quickbrain.store import NoteStore, SqlNoteStore
from quickbrain.transfer import export_data, import_data

configure_logging()

app = FastAPI(title="QuickBrain API")


def get_store() -> NoteStore:
    init_db()
    return SqlNoteStore()

# ---------- Schemas ----------
class NoteCreate(BaseModel):
    title: str = ""
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    memorize: bool = False

class NoteEdit(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    memorize: Optional[bool] = None

class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime
    last_viewed_at: datetime
    view_count: int
    memorize: bool
    next_review_at: Optional[datetime] = None
    review_interval: Optional[int] = None
    ease_factor: Optional[float] = None
    freshness: float
    freshness_label: str

class PeriodOut(BaseModel):
    period: str
    notes: list[NoteOut]

class Rating(BaseModel):
    quality: int

class SettingsOut(BaseModel):
    theme: str
    show_resurface_on_open: bool
    resurface_count: int

class SettingsEdit(BaseModel):
    theme: Optional[str] = None
    show_resurface_on_open: Optional[bool] = None
    resurface_count: Optional[int] = None

class ImportOut(BaseModel):
    imported: int
    errors: int

def _to_out(n) -> NoteOut:
    score = freshness(n)
    return NoteOut(
        id=n.id, title=n.title, content=n.content, tags=list(n.tags),
        created_at=n.created_at, updated_at=n.updated_at,
        last_viewed_at=n.last_viewed_at, view_count=n.view_count,
        memorize=n.memorize, next_review_at=n.next_review_at,
        review_interval=n.review_interval, ease_factor=n.ease_factor,
        freshness=score, freshness_label=freshness_label(score),
    )

def _settings_out(s) -> SettingsOut:
    return SettingsOut(
        theme=s.theme,
        show_resurface_on_open=s.show_resurface_on_open,
        resurface_count=s.resurface_count,
    )

# ---------- Notes ----------
@app.get("/api/notes", response_model=list[NoteOut])
def api_list_notes(
    tag: Optional[str] = None,
    sort: str = Query("updated", pattern="^(updated|created|title)$"),
    store: NoteStore = Depends(get_store),
):
    return [_to_out(n) for n in list_notes(store, tag=tag, sort=sort)]

@app.post("/api/notes", response_model=NoteOut, status_code=201)
def api_create_note(payload: NoteCreate, store: NoteStore = Depends(get_store)):
    n = create_note(store, payload.title, payload.content, payload.tags, memorize=payload.memorize)
    return _to_out(n)

@app.get("/api/notes/{note_id}", response_model=NoteOut)
def api_get_note(note_id: str, store: NoteStore = Depends(get_store)):
    n = open_note(store, note_id)
    if not n:
        raise HTTPException(status_code=404, detail="Not found")
    return _to_out(n)

@app.patch("/api/notes/{note_id}", response_model=NoteOut)
def api_edit_note(note_id: str, payload: NoteEdit, store: NoteStore = Depends(get_store)):
    try:
        n = edit_note(
            store,
            note_id,
            title=payload.title,
            content=payload.content,
            tags=payload.tags,
            memorize=payload.memorize,
        )
    except NoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _to_out(n)

@app.delete("/api/notes/{note_id}")
def api_delete_note(note_id: str, store: NoteStore = Depends(get_store)):
    try:
        delete_note(store, note_id)
    except NoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}

@app.get("/api/tags", response_model=list[str])
def api_tags(store: NoteStore = Depends(get_store)):
    return all_tags(store)

# ---------- Recall ----------
@app.get("/api/search", response_model=list[NoteOut])
def api_search(q: str = "", store: NoteStore = Depends(get_store)):
    return [_to_out(n) for n in search(store, q)]

@app.get("/api/resurface", response_model=list[NoteOut])
def api_resurface(limit: Optional[int] = Query(None, ge=0), store: NoteStore = Depends(get_store)):
    if limit is None:
        limit = get_settings(store).resurface_count
    return [_to_out(n) for n in resurface(store, limit)]

@app.get("/api/on-this-day", response_model=list[PeriodOut])
def api_on_this_day(store: NoteStore = Depends(get_store)):
    return [
        PeriodOut(period=label, notes=[_to_out(n) for n in notes])
        for label, notes in on_this_day(store)
    ]

@app.get("/api/serendipity", response_model=list[NoteOut])
def api_serendipity(store: NoteStore = Depends(get_store)):
    pair = mash(store)
    if pair is None:
        raise HTTPException(status_code=404, detail="unavailable: need at least two notes")
    return [_to_out(n) for n in pair]

@app.get("/api/review/due", response_model=list[NoteOut])
def api_review_due(store: NoteStore = Depends(get_store)):
    return [_to_out(n) for n in due_notes(store)]

@app.post("/api/review/{note_id}", response_model=NoteOut)
def api_rate(note_id: str, payload: Rating, store: NoteStore = Depends(get_store)):
    try:
        n = rate_note(store, note_id, payload.quality)
    except InvalidQualityError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _to_out(n)

# ---------- Settings & backup ----------
@app.get("/api/settings", response_model=SettingsOut)
def api_get_settings(store: NoteStore = Depends(get_store)):
    return _settings_out(get_settings(store))

@app.patch("/api/settings", response_model=SettingsOut)
def api_edit_settings(payload: SettingsEdit, store: NoteStore = Depends(get_store)):
    try:
        s = update_settings(
            store,
            theme=payload.theme,
            show_resurface_on_open=payload.show_resurface_on_open,
            resurface_count=payload.resurface_count,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _settings_out(s)

@app.get("/api/export")
def api_export(store: NoteStore = Depends(get_store)):
    return Response(content=export_data(store), media_type="application/json")

@app.post("/api/import", response_model=ImportOut)
async def api_import(request: Request, store: NoteStore = Depends(get_store)):
    body = await request.body()
    try:
        result = await run_in_threadpool(import_data, store, body)
    except ImportFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ImportOut(imported=result.imported, errors=result.errors)
