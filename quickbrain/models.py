from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional
from uuid import uuid4
from pydantic import NaiveDatetime
from sqlmodel import Field, SQLModel

DEFAULT_EASE = 2.5
MIN_EASE = 1.3


def now_local() -> datetime:
    """Naive local time; calendar-day logic works on the user's days."""
    return datetime.now()


def normal_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Strip + lowercase, drop blanks and duplicates, keep first-seen order."""
    if not tags:
        return []
    seen: dict[str, None] = {}
    for raw in tags:
        if not raw:
            continue
        for part in raw.split(","):
            t = part.strip().lower()
            if t:
                seen.setdefault(t, None)
    return list(seen)


class Note(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = ""
    content: str = ""
    # tags as CSV, creation order kept
    tags_csv: str = Field(default="", index=True)

    # naive local time, written to SQLite as-is
    created_at: NaiveDatetime = Field(default_factory=now_local, index=True)
    updated_at: NaiveDatetime = Field(default_factory=now_local, index=True)
    last_viewed_at: NaiveDatetime = Field(default_factory=now_local, index=True)
    view_count: int = 1

    memorize: bool = Field(default=False, index=True)
    next_review_at: Optional[NaiveDatetime] = Field(default=None, index=True)
    review_interval: Optional[int] = None
    ease_factor: Optional[float] = None

    @property
    def tags(self) -> list[str]:
        if not self.tags_csv:
            return []
        return [t for t in self.tags_csv.split(",") if t]

    def set_tags(self, tags: Iterable[str] | None) -> None:
        self.tags_csv = ",".join(normal_tags(tags))

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or now_local()

    def set_memorize(self, value: bool, now: datetime | None = None) -> None:
        """Flip the memorize flag; starting fresh schedules a review right away."""
        if value and not self.memorize:
            self.next_review_at = now or now_local()
            self.review_interval = 1
            self.ease_factor = DEFAULT_EASE
        elif not value and self.memorize:
            self.next_review_at = None
            self.review_interval = None
            self.ease_factor = None
        self.memorize = value


class AppSettings(SQLModel, table=True):
    id: str = Field(default="main", primary_key=True)
    theme: str = "dark"
    show_resurface_on_open: bool = True
    resurface_count: int = 2
