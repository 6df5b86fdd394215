"""Note selection strategies: resurface, on this day, serendipity and search."""
from __future__ import annotations
import calendar
import random
from datetime import date, datetime, time, timedelta
from typing import Optional

from .models import Note, now_local
from .store import NoteStore

STALE_AFTER = timedelta(days=7)


def resurface(
    store: NoteStore,
    limit: int = 2,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> list[Note]:
    """Up to `limit` notes not viewed for more than a week, sampled at random."""
    if limit <= 0:
        return []
    cutoff = (now or now_local()) - STALE_AFTER
    stale = store.scan(lambda n: n.last_viewed_at < cutoff)
    rng = rng or random
    return rng.sample(stale, min(limit, len(stale)))


def months_back(day: date, months: int) -> date:
    """Calendar month subtraction; the day clamps to the end of a shorter month."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def _created_on(store: NoteStore, day: date) -> list[Note]:
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return store.scan_range("created_at", start, end)


def on_this_day(store: NoteStore, now: Optional[datetime] = None) -> list[tuple[str, list[Note]]]:
    """Notes created exactly a week, a month and a year ago; empty periods left out."""
    today = (now or now_local()).date()
    targets = [
        ("1 week ago", today - timedelta(days=7)),
        ("1 month ago", months_back(today, 1)),
        ("1 year ago", months_back(today, 12)),
    ]
    periods = []
    for label, day in targets:
        notes = _created_on(store, day)
        if notes:
            periods.append((label, notes))
    return periods


def mash(store: NoteStore, rng: Optional[random.Random] = None) -> Optional[tuple[Note, Note]]:
    """Two distinct random notes, or None when there are fewer than two."""
    notes = store.all()
    if len(notes) < 2:
        return None
    first, second = (rng or random).sample(notes, 2)
    return first, second


def search(store: NoteStore, query: str) -> list[Note]:
    """Case-insensitive substring match on title, content and tags."""
    if not query or not query.strip():
        return []
    q = query.lower()

    def matches(n: Note) -> bool:
        return (
            q in n.title.lower()
            or q in n.content.lower()
            or any(q in t.lower() for t in n.tags)
        )

    return store.scan(matches)
