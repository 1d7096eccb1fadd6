# mood_display.py
from datetime import date, datetime

from trends_service import ZoneLike, as_utc, resolve_zone

MOOD_EMOJI = {
    "happy": "😊",
    "calm": "😌",
    "sad": "😢",
    "anxious": "😰",
}
DEFAULT_EMOJI = "😐"

MOOD_COLORS = {
    "Happy": "#4CAF50",
    "Calm": "#2196F3",
    "Sad": "#FF9800",
    "Anxious": "#F44336",
}
DEFAULT_COLOR = "#9E9E9E"


def mood_to_emoji(mood) -> str:
    return MOOD_EMOJI.get(str(mood or "").lower(), DEFAULT_EMOJI)


def mood_to_color(mood) -> str:
    return MOOD_COLORS.get(mood, DEFAULT_COLOR)


def format_percentage(ratio: float) -> str:
    """0.756 -> '75%' (truncated, not rounded).

    Float noise is rounded off first so 29/100 reads '29%', not '28%'.
    """
    return f"{int(round(ratio * 100, 6))}%"


def _local(ts, tz):
    # calendar dates carry no zone
    if isinstance(ts, date) and not isinstance(ts, datetime):
        return ts
    return as_utc(ts).astimezone(resolve_zone(tz))


def format_date(ts, tz: ZoneLike = None) -> str:
    return _local(ts, tz).strftime("%b %d")


def format_short_date(ts, tz: ZoneLike = None) -> str:
    return _local(ts, tz).strftime("%m/%d")


def format_long_date(ts, tz: ZoneLike = None) -> str:
    return _local(ts, tz).strftime("%b %d, %Y")


def format_time(ts, tz: ZoneLike = None) -> str:
    return _local(ts, tz).strftime("%H:%M")


def decorate_mood(mood) -> dict:
    """Label plus the emoji and colour the UI draws it with."""
    return {
        "mood": mood,
        "emoji": mood_to_emoji(mood),
        "color": mood_to_color(mood),
    }


def describe_entry(mood, timestamp, tz: ZoneLike = None) -> dict:
    """Display fields for one history row, in the user's zone."""
    return {
        "emoji": mood_to_emoji(mood),
        "color": mood_to_color(mood),
        "day": format_date(timestamp, tz),
        "date": format_long_date(timestamp, tz),
        "time": format_time(timestamp, tz),
    }
