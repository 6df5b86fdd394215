from __future__ import annotations
from datetime import datetime
from typing import Optional

from .models import Note, now_local

FRESH_DAYS = 3
FORGOTTEN_DAYS = 30


def days_since_view(note: Note, now: Optional[datetime] = None) -> float:
    now = now or now_local()
    return (now - note.last_viewed_at).total_seconds() / 86400


def freshness(note: Note, now: Optional[datetime] = None) -> float:
    """
    How fresh a note is in the user's mind, from 1.0 (fresh) to 0.0 (forgotten).

    Flat 1.0 for the first 3 days after the last view, then a linear ramp
    down to 0.0 at day 30.
    """
    d = days_since_view(note, now)
    if d <= FRESH_DAYS:
        return 1.0
    if d >= FORGOTTEN_DAYS:
        return 0.0
    return 1 - (d - FRESH_DAYS) / (FORGOTTEN_DAYS - FRESH_DAYS)


def freshness_label(score: float) -> str:
    if score > 0.7:
        return "Fresh"
    if score > 0.3:
        return "Fading"
    return "Forgotten"
