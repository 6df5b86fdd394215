"""
SM-2 style spaced repetition for notes flagged `memorize`.

`next_state` is the pure scheduling rule; `rate_note` applies it to a stored
note; `ReviewSession` is the linear review queue a UI drives card by card.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .errors import InvalidQualityError, NoteNotFoundError
from .models import DEFAULT_EASE, MIN_EASE, Note, now_local
from .store import NoteStore

logger = logging.getLogger(__name__)

QUALITIES = (1, 2, 3, 4, 5)


@dataclass(frozen=True)
class ReviewState:
    interval: int
    ease: float
    next_review_at: datetime


def validate_quality(quality) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int) or quality not in QUALITIES:
        raise InvalidQualityError(quality)
    return quality


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def next_state(interval: Optional[int], ease: Optional[float], quality: int, now: datetime) -> ReviewState:
    """Advance (interval, ease) by one rating. Missing values start at 1 day / 2.5."""
    quality = validate_quality(quality)
    interval = interval or 1
    ease = ease or DEFAULT_EASE

    if quality < 3:
        interval = 1
    else:
        # the first two small intervals skip the ease multiplier
        if interval == 1:
            interval = 1
        elif interval == 2:
            interval = 6
        else:
            interval = _round_half_up(interval * ease)
        miss = 5 - quality
        ease = max(MIN_EASE, ease + (0.1 - miss * (0.08 + miss * 0.02)))

    return ReviewState(interval=interval, ease=ease, next_review_at=now + timedelta(days=interval))


def is_due(note: Note, now: datetime) -> bool:
    return note.memorize and (note.next_review_at is None or note.next_review_at <= now)


def due_notes(store: NoteStore, now: Optional[datetime] = None) -> list[Note]:
    now = now or now_local()
    return store.scan(lambda n: is_due(n, now))


def rate_note(store: NoteStore, note_id: str, quality: int, now: Optional[datetime] = None) -> Note:
    """
    Record a recall rating for a note and reschedule it.

    Raises InvalidQualityError before touching the store, and
    NoteNotFoundError when the note is gone. Rating counts as a view.
    """
    quality = validate_quality(quality)
    now = now or now_local()
    note = store.peek(note_id)
    if note is None:
        raise NoteNotFoundError(note_id)

    state = next_state(note.review_interval, note.ease_factor, quality, now)
    note.review_interval = state.interval
    note.ease_factor = state.ease
    note.next_review_at = state.next_review_at
    note.last_viewed_at = now
    saved = store.put(note)
    logger.info("rated %s q=%d -> %dd (ease %.2f)", note_id, quality, state.interval, state.ease)
    return saved


class ReviewSession:
    """
    A review run over the notes due at start.

    The due batch is fetched once; each rating advances the cursor, and the
    store is only queried again when the batch runs out (to pick up notes
    that fell due meanwhile). Ratings for one note must not overlap.
    """

    def __init__(self, store: NoteStore, clock=now_local):
        self.store = store
        self.clock = clock
        self.batch: list[Note] = []
        self.index = 0
        self.revealed = False

    def start(self) -> "ReviewSession":
        self.batch = due_notes(self.store, self.clock())
        self.index = 0
        self.revealed = False
        return self

    @property
    def current(self) -> Optional[Note]:
        if self.index < len(self.batch):
            return self.batch[self.index]
        return None

    @property
    def remaining(self) -> int:
        return len(self.batch) - self.index

    def reveal(self) -> Note:
        note = self.current
        if note is None:
            raise NoteNotFoundError("<none due>")
        if self.store.peek(note.id) is None:
            raise NoteNotFoundError(note.id)
        self.revealed = True
        return note

    def rate(self, quality: int) -> Note:
        note = self.current
        if note is None:
            raise NoteNotFoundError("<none due>")
        rated = rate_note(self.store, note.id, quality, self.clock())
        if self.index < len(self.batch) - 1:
            self.index += 1
            self.revealed = False
        else:
            self.start()
        return rated
