"""Per-user persistence for mood entries.

Thin layer over the MoodEntry table. Analytics never touch the session; they
get snapshots built from what these functions return.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from models import MoodEntry, db, utcnow
from trends_service import MOOD_SCORES, ZoneLike, as_utc, resolve_zone

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_NOTE_LENGTH = 5000

_CANONICAL_MOODS = {label.lower(): label for label in MOOD_SCORES}


class EntryNotFound(LookupError):
    """No entry with that id belongs to the user."""


@dataclass
class EntryPage:
    entries: List[MoodEntry]
    total: int
    page: int
    page_size: int
    has_more: bool

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "has_more": self.has_more,
        }


def validate_mood(label) -> str:
    """Return the canonical spelling of a mood label or raise ValueError."""
    key = str(label or "").strip().lower()
    if key not in _CANONICAL_MOODS:
        allowed = ", ".join(MOOD_SCORES)
        raise ValueError(f"Invalid mood {label!r}; expected one of: {allowed}")
    return _CANONICAL_MOODS[key]


def validate_note(note) -> str:
    note = "" if note is None else str(note)
    if len(note) > MAX_NOTE_LENGTH:
        raise ValueError(f"Note is longer than {MAX_NOTE_LENGTH} characters")
    return note


def _to_naive_utc(ts: datetime) -> datetime:
    return as_utc(ts).replace(tzinfo=None)


def _local_day_bounds(now: Optional[datetime], tz: ZoneLike) -> Tuple[datetime, datetime]:
    """[start, end) of the local calendar day containing ``now``, as naive UTC."""
    zone = resolve_zone(tz)
    today = as_utc(now or datetime.now(timezone.utc)).astimezone(zone).date()
    start = datetime.combine(today, time.min, tzinfo=zone)
    end = datetime.combine(today + timedelta(days=1), time.min, tzinfo=zone)
    return _to_naive_utc(start), _to_naive_utc(end)


def _escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def get_entries_for_user(user_id: str) -> List[MoodEntry]:
    """All entries of one user, latest first."""
    return (
        MoodEntry.query
        .filter_by(user_id=user_id)
        .order_by(MoodEntry.timestamp.desc(), MoodEntry.id.desc())
        .all()
    )


def get_entry(user_id: str, entry_id: int) -> MoodEntry:
    entry = db.session.get(MoodEntry, entry_id)
    if entry is None or entry.user_id != user_id:
        raise EntryNotFound(entry_id)
    return entry


def create_entry(user_id: str, mood: str, note: str = "", timestamp: Optional[datetime] = None) -> MoodEntry:
    entry = MoodEntry(
        user_id=user_id,
        mood=validate_mood(mood),
        note=validate_note(note),
        timestamp=_to_naive_utc(timestamp) if timestamp else utcnow(),
    )
    db.session.add(entry)
    _commit()
    logger.info("Created entry %s for user %s", entry.id, user_id)
    return entry


def get_today_entry(user_id: str, now: Optional[datetime] = None, tz: ZoneLike = None) -> Optional[MoodEntry]:
    start, end = _local_day_bounds(now, tz)
    return (
        MoodEntry.query
        .filter(
            MoodEntry.user_id == user_id,
            MoodEntry.timestamp >= start,
            MoodEntry.timestamp < end,
        )
        .order_by(MoodEntry.timestamp, MoodEntry.id)
        .first()
    )


def save_or_update_today_mood(
    user_id: str, mood: str, now: Optional[datetime] = None, tz: ZoneLike = None
) -> Tuple[MoodEntry, bool]:
    """Keep at most one entry per local day: update today's mood or create it.

    Returns ``(entry, created)``.
    """
    mood = validate_mood(mood)
    now = now or datetime.now(timezone.utc)
    entry = get_today_entry(user_id, now=now, tz=tz)
    if entry is not None:
        entry.mood = mood
        _commit()
        logger.info("Updated today's mood for user %s (entry %s)", user_id, entry.id)
        return entry, False
    return create_entry(user_id, mood, note="", timestamp=now), True


def update_entry(user_id: str, entry_id: int, mood: Optional[str] = None, note: Optional[str] = None) -> MoodEntry:
    entry = get_entry(user_id, entry_id)
    if mood is not None:
        entry.mood = validate_mood(mood)
    if note is not None:
        entry.note = validate_note(note)
    _commit()
    return entry


def delete_entry(user_id: str, entry_id: int) -> None:
    entry = get_entry(user_id, entry_id)
    db.session.delete(entry)
    _commit()
    logger.info("Deleted entry %s for user %s", entry_id, user_id)


def search_entries(user_id: str, query: str = "", page: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> EntryPage:
    """Latest-first history, optionally filtered by a substring of mood or note."""
    page = max(int(page), 0)
    page_size = min(max(int(page_size), 1), MAX_PAGE_SIZE)

    q = MoodEntry.query.filter(MoodEntry.user_id == user_id)
    query = (query or "").strip()
    if query:
        pattern = f"%{_escape_like(query)}%"
        q = q.filter(or_(
            MoodEntry.mood.ilike(pattern, escape="\\"),
            MoodEntry.note.ilike(pattern, escape="\\"),
        ))

    total = q.count()
    entries = (
        q.order_by(MoodEntry.timestamp.desc(), MoodEntry.id.desc())
        .offset(page * page_size)
        .limit(page_size)
        .all()
    )
    return EntryPage(
        entries=entries,
        total=total,
        page=page,
        page_size=page_size,
        has_more=(page + 1) * page_size < total,
    )
