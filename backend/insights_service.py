"""Rule-based insights for the home screen."""
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from trends_service import (
    ZoneLike,
    as_utc,
    dominant_mood,
    group_by_day,
    resolve_zone,
    sort_entries,
)

# Includes legacy labels (Excited, Angry) the diary no longer offers.
POSITIVE_INSIGHT_MOODS = ("Happy", "Excited", "Calm")
NEGATIVE_MOODS = ("Sad", "Anxious", "Angry")

RECENT_ENTRY_COUNT = 7
NEGATIVE_DAYS_ALERT = 2
DOMINANCE_FACTOR = 1.5

POSITIVE, NEGATIVE, BALANCED, DEFAULT = "positive", "negative", "balanced", "default"

INSIGHT_MESSAGES = {
    POSITIVE: (
        "You've been feeling positive lately! Your most common mood is {mood}. "
        "Consider what activities make you feel this way and try to incorporate them more often."
    ),
    NEGATIVE: (
        "We notice you've been experiencing some challenging emotions recently. "
        "Remember that it's okay to not feel okay. Be kind to yourself during this time."
    ),
    BALANCED: (
        "Your mood has been balanced recently. Keep tracking to better understand "
        "your emotional patterns and what influences them."
    ),
    DEFAULT: (
        "Start tracking your mood to get personalized insights and recommendations "
        "for your mental wellbeing."
    ),
}

RECOMMENDATION_POOL = {
    POSITIVE: [
        ("Keep it up", "💪"),
        ("Share joy", "🌟"),
        ("Stay active", "🚶"),
        ("Morning walks", "🌅"),
        ("Gratitude journal", "📔"),
    ],
    NEGATIVE: [
        ("Deep breathing", "🌬️"),
        ("Talk to someone", "💬"),
        ("Gentle exercise", "🧘"),
        ("Listen to music", "🎵"),
        ("Self-care time", "🛀"),
    ],
    BALANCED: [
        ("Mindful moments", "🧠"),
        ("Stay hydrated", "💧"),
        ("Good sleep", "😴"),
        ("Healthy meals", "🍎"),
        ("Connect with nature", "🌳"),
    ],
    DEFAULT: [
        ("Start tracking", "📝"),
        ("Daily reflection", "🤔"),
        ("Set small goals", "🎯"),
    ],
}


@dataclass(frozen=True)
class Insight:
    kind: str
    message: str
    most_common_mood: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "most_common_mood": self.most_common_mood,
        }


def build_insight(entries: Iterable) -> Insight:
    """Classify the last few entries as positive, negative or balanced."""
    ordered = sort_entries(entries)
    if not ordered:
        return Insight(DEFAULT, INSIGHT_MESSAGES[DEFAULT])

    recent = list(reversed(ordered))[:RECENT_ENTRY_COUNT]
    most_common = dominant_mood(e.mood for e in recent)
    positive = sum(1 for e in recent if e.mood in POSITIVE_INSIGHT_MOODS)
    negative = sum(1 for e in recent if e.mood in NEGATIVE_MOODS)

    if positive > negative * DOMINANCE_FACTOR:
        kind = POSITIVE
    elif negative > positive * DOMINANCE_FACTOR:
        kind = NEGATIVE
    else:
        kind = BALANCED
    return Insight(kind, INSIGHT_MESSAGES[kind].format(mood=most_common), most_common)


def pick_recommendations(kind: str, count: int = 3, rng: Optional[random.Random] = None) -> List[dict]:
    pool = RECOMMENDATION_POOL.get(kind) or RECOMMENDATION_POOL[DEFAULT]
    rng = rng or random.Random()
    picked = rng.sample(pool, min(count, len(pool)))
    return [{"title": title, "emoji": emoji} for title, emoji in picked]


def count_negative_days(
    entries: Iterable, now: Optional[datetime] = None, tz: ZoneLike = None, days: int = 3
) -> int:
    """Consecutive days, counting back from today, whose latest entry was negative.

    A day without an entry ends the run.
    """
    zone = resolve_zone(tz)
    today = as_utc(now or datetime.now(timezone.utc)).astimezone(zone).date()
    by_day = group_by_day(sort_entries(entries), zone)

    streak = 0
    for offset in range(days):
        day_entries = by_day.get(today - timedelta(days=offset))
        if not day_entries or day_entries[-1].mood not in NEGATIVE_MOODS:
            break
        streak += 1
    return streak


def greeting(now: Optional[datetime] = None, tz: ZoneLike = None) -> str:
    hour = as_utc(now or datetime.now(timezone.utc)).astimezone(resolve_zone(tz)).hour
    if 5 <= hour < 12:
        return "Good Morning"
    if 12 <= hour < 18:
        return "Good Afternoon"
    if 18 <= hour < 22:
        return "Good Evening"
    return "Good Night"
