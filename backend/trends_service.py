"""
Trend analytics over a user's mood entries.

Everything here is a pure function of (entries, now, tz): the caller hands in a
full snapshot of one user's entries and gets a fresh TrendStatistics back.
Nothing is cached between calls.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

MOOD_SCORES = {
    "Happy": 4,
    "Calm": 3,
    "Sad": 2,
    "Anxious": 1,
}
NEUTRAL_SCORE = 2.5
POSITIVE_MOODS = frozenset({"Happy", "Calm"})

# Largest possible gap between two adjacent scores on the 4-point scale.
MAX_SCORE_SWING = 3

NO_DATA = "No Data"
UNKNOWN_MOOD = "Unknown"

SERIES_DAYS = 14
DAILY_TREND_DAYS = 30

MORNING, AFTERNOON, EVENING, NIGHT = "Morning", "Afternoon", "Evening", "Night"
TIME_OF_DAY_BUCKETS = (MORNING, AFTERNOON, EVENING, NIGHT)

ZoneLike = Union[tzinfo, str, None]


@dataclass(frozen=True)
class DailyScore:
    date: date
    score: float
    has_data: bool
    dominant_mood: str

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "score": self.score,
            "has_data": self.has_data,
            "dominant_mood": self.dominant_mood,
        }


@dataclass(frozen=True)
class TrendStatistics:
    """Everything the trends screen shows, derived from one entry snapshot."""

    generated_at: datetime
    daily_score_series: Tuple[DailyScore, ...]
    mood_distribution: Dict[str, int] = field(default_factory=dict)
    time_of_day_distribution: Dict[str, int] = field(default_factory=dict)
    weekly_mood_data: Dict[str, Dict[str, int]] = field(default_factory=dict)
    daily_mood_trend: Dict[str, str] = field(default_factory=dict)
    total_entries: int = 0
    average_mood_score: float = 0.0
    most_frequent_mood: str = UNKNOWN_MOOD
    mood_stability_index: float = 1.0
    positive_ratio: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_entries == 0

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "daily_score_series": [d.to_dict() for d in self.daily_score_series],
            "mood_distribution": dict(self.mood_distribution),
            "time_of_day_distribution": dict(self.time_of_day_distribution),
            "weekly_mood_data": {k: dict(v) for k, v in self.weekly_mood_data.items()},
            "daily_mood_trend": dict(self.daily_mood_trend),
            "total_entries": self.total_entries,
            "average_mood_score": self.average_mood_score,
            "most_frequent_mood": self.most_frequent_mood,
            "mood_stability_index": self.mood_stability_index,
            "positive_ratio": self.positive_ratio,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "is_empty": self.is_empty,
        }


# ---------- Primitives ----------

def mood_score(mood) -> float:
    """Numeric score for a mood label; anything unrecognised is neutral."""
    return float(MOOD_SCORES.get(mood, NEUTRAL_SCORE))


def is_positive(mood) -> bool:
    return mood in POSITIVE_MOODS


def resolve_zone(tz: ZoneLike = None) -> tzinfo:
    """Accept a tzinfo, an IANA name or None (UTC)."""
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(str(tz))
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {tz!r}") from exc


def as_utc(ts) -> datetime:
    """Normalise a timestamp to an aware UTC datetime.

    Naive datetimes are taken to be UTC (that is how the store writes them);
    ints and floats are epoch milliseconds.
    """
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)
    if isinstance(ts, (int, float)):
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
    raise TypeError(f"Unsupported timestamp type: {type(ts).__name__}")


def local_time(ts, zone: tzinfo) -> datetime:
    return as_utc(ts).astimezone(zone)


def local_day(ts, zone: tzinfo) -> date:
    return local_time(ts, zone).date()


def sort_entries(entries: Iterable) -> List:
    """Oldest first. The sort is stable, so equal timestamps keep input order."""
    return sorted(entries, key=lambda e: as_utc(e.timestamp))


def dominant_mood(moods: Iterable[str], default: str = UNKNOWN_MOOD) -> str:
    """Most common label; ties go to whichever label showed up first."""
    counts = Counter(moods)
    if not counts:
        return default
    # Counter keeps insertion order and max() returns the first maximum.
    return max(counts, key=counts.get)


def time_of_day(hour: int) -> str:
    if 6 <= hour < 12:
        return MORNING
    if 12 <= hour < 18:
        return AFTERNOON
    if 18 <= hour < 22:
        return EVENING
    return NIGHT


def group_by_day(entries: Sequence, zone: tzinfo) -> Dict[date, List]:
    """Bucket entries by local calendar day, keeping their relative order."""
    buckets: Dict[date, List] = {}
    for entry in entries:
        buckets.setdefault(local_day(entry.timestamp, zone), []).append(entry)
    return buckets


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_label(start: date) -> str:
    end = start + timedelta(days=6)
    return f"{start:%b %d} - {end:%b %d}"


def group_by_week(entries: Sequence, zone: tzinfo) -> Dict[date, List]:
    """Bucket entries by the Monday that starts their local week."""
    buckets: Dict[date, List] = {}
    for entry in entries:
        start = week_start(local_day(entry.timestamp, zone))
        buckets.setdefault(start, []).append(entry)
    return buckets


def last_n_days(today: date, days: int) -> List[date]:
    """The ``days`` calendar days ending ``today``, oldest first."""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


# ---------- Statistics ----------

def build_daily_score_series(
    by_day: Dict[date, List], today: date, days: int = SERIES_DAYS
) -> Tuple[DailyScore, ...]:
    """Score line for the trailing window.

    A day without entries repeats the previous day's score; a leading gap
    starts from the neutral score.
    """
    series = []
    previous = NEUTRAL_SCORE
    for day in last_n_days(today, days):
        day_entries = by_day.get(day, [])
        if day_entries:
            scores = [mood_score(e.mood) for e in day_entries]
            score = sum(scores) / len(scores)
            series.append(DailyScore(day, score, True, dominant_mood(e.mood for e in day_entries)))
        else:
            score = previous
            series.append(DailyScore(day, score, False, NO_DATA))
        previous = score
    return tuple(series)


def mood_distribution(entries: Sequence) -> Dict[str, int]:
    return dict(Counter(e.mood for e in entries))


def time_of_day_distribution(entries: Sequence, zone: tzinfo) -> Dict[str, int]:
    counts = dict.fromkeys(TIME_OF_DAY_BUCKETS, 0)
    for entry in entries:
        counts[time_of_day(local_time(entry.timestamp, zone).hour)] += 1
    return counts


def weekly_mood_data(entries: Sequence, zone: tzinfo) -> Dict[str, Dict[str, int]]:
    weekly: Dict[str, Dict[str, int]] = {}
    for start, week_entries in group_by_week(entries, zone).items():
        counts = weekly.setdefault(week_label(start), {})
        for entry in week_entries:
            counts[entry.mood] = counts.get(entry.mood, 0) + 1
    return weekly


def daily_mood_trend(
    by_day: Dict[date, List], today: date, days: int = DAILY_TREND_DAYS
) -> Dict[str, str]:
    cutoff = today - timedelta(days=days)
    return {
        f"{day:%b %d}": dominant_mood(e.mood for e in day_entries)
        for day, day_entries in sorted(by_day.items())
        if cutoff <= day <= today
    }


def average_mood_score(entries: Sequence) -> float:
    if not entries:
        return 0.0
    return sum(mood_score(e.mood) for e in entries) / len(entries)


def positive_ratio(entries: Sequence) -> float:
    if not entries:
        return 0.0
    return sum(1 for e in entries if is_positive(e.mood)) / len(entries)


def mood_stability_index(ordered: Sequence) -> float:
    """1.0 means every consecutive pair had the same score, 0.0 means maximal swings."""
    if len(ordered) < 2:
        return 1.0
    total = 0.0
    for prev, curr in zip(ordered, ordered[1:]):
        total += 1 - abs(mood_score(prev.mood) - mood_score(curr.mood)) / MAX_SCORE_SWING
    return total / (len(ordered) - 1)


def longest_streak(ordered: Sequence) -> int:
    longest = running = 0
    for entry in ordered:
        if is_positive(entry.mood):
            running += 1
            longest = max(longest, running)
        else:
            running = 0
    return longest


def current_streak(ordered: Sequence) -> int:
    streak = 0
    for entry in reversed(ordered):
        if not is_positive(entry.mood):
            break
        streak += 1
    return streak


def compute_trend_statistics(
    entries: Iterable, now: Optional[datetime] = None, tz: ZoneLike = None
) -> TrendStatistics:
    """Derive every trend statistic from a full snapshot of one user's entries.

    ``entries`` only need ``mood`` and ``timestamp`` attributes and may come in
    any order. ``now`` is read once and fixes "today" for the whole call; ``tz``
    decides calendar days and hour-of-day buckets.
    """
    zone = resolve_zone(tz)
    now = as_utc(now or datetime.now(timezone.utc)).astimezone(zone)
    today = now.date()

    ordered = sort_entries(entries)
    by_day = group_by_day(ordered, zone)
    distribution = mood_distribution(ordered)

    logger.debug("Computing trends for %d entries in %s", len(ordered), zone)

    return TrendStatistics(
        generated_at=now,
        daily_score_series=build_daily_score_series(by_day, today),
        mood_distribution=distribution,
        time_of_day_distribution=time_of_day_distribution(ordered, zone),
        weekly_mood_data=weekly_mood_data(ordered, zone),
        daily_mood_trend=daily_mood_trend(by_day, today),
        total_entries=len(ordered),
        average_mood_score=average_mood_score(ordered),
        # the Counter was fed in time order, so ties resolve to the earliest label
        most_frequent_mood=dominant_mood(e.mood for e in ordered),
        mood_stability_index=mood_stability_index(ordered),
        positive_ratio=positive_ratio(ordered),
        current_streak=current_streak(ordered),
        longest_streak=longest_streak(ordered),
    )
