# gpt_service.py
import logging
from typing import Optional, Tuple

import httpx

from config import Config
from mood_display import format_percentage
from trends_service import TrendStatistics

logger = logging.getLogger(__name__)

API_URL = "https://openrouter.ai/api/v1/chat/completions"

SYSTEM_PROMPT = (
    "You are a warm, trauma-informed mental health counselor. "
    "Be concise, kind, and practical. Never diagnose. "
    "Acknowledge feelings, reflect patterns in the mood data, and suggest one gentle action."
)

FALLBACK_AFFIRMATION = "You're doing great. Keep going!"


def _build_stats_block(stats: TrendStatistics) -> str:
    """Turn the statistics into a compact block for context."""
    recent = [d for d in stats.daily_score_series if d.has_data]
    if recent:
        days = ", ".join(f"{d.date:%b %d}: {d.dominant_mood}" for d in recent)
    else:
        days = "no entries in the last two weeks"
    return "\n".join([
        f"Entries logged: {stats.total_entries}",
        f"Most frequent mood: {stats.most_frequent_mood}",
        f"Positive moods: {format_percentage(stats.positive_ratio)}",
        f"Average mood score (1-4): {stats.average_mood_score:.2f}",
        f"Mood stability (0-1): {stats.mood_stability_index:.2f}",
        f"Current positive streak: {stats.current_streak} (longest {stats.longest_streak})",
        f"Recent days: {days}",
    ])


def _parse_reply(content: str) -> Tuple[str, str]:
    # Robust parsing: look for lines starting with Summary:/Affirmation:
    summary = None
    affirmation = None
    for line in content.splitlines():
        low = line.strip().lower()
        if low.startswith("summary:"):
            summary = line.split(":", 1)[1].strip()
        elif low.startswith("affirmation:"):
            affirmation = line.split(":", 1)[1].strip()

    if not summary:
        # fallback: first line
        summary = content.splitlines()[0].strip()
    return summary, affirmation or FALLBACK_AFFIRMATION


def generate_trend_reflection(
    stats: TrendStatistics, config: Config, transport: Optional[httpx.BaseTransport] = None
) -> Optional[Tuple[str, str]]:
    """
    Ask the LLM for a one-line summary of the mood trends and an affirmation.
    Returns None when no API key is configured or the call fails; callers fall
    back to the rule-based insight.
    """
    if not config.openrouter_api_key or stats.is_empty:
        return None

    user_prompt = (
        f"Mood statistics for the user:\n{_build_stats_block(stats)}\n\n"
        "Please respond in exactly two lines:\n"
        "Summary: <one warm, specific sentence about their recent moods>\n"
        "Affirmation: <one supportive sentence>"
    )

    headers = {
        "Authorization": f"Bearer {config.openrouter_api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": config.public_app_url,
        "X-Title": "MoodTrends",
    }

    body = {
        "model": config.openrouter_model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": 200,     # keep responses short & cheap
        "temperature": 0.7,
    }

    try:
        with httpx.Client(timeout=30, transport=transport) as client:
            resp = client.post(API_URL, headers=headers, json=body)
            logger.debug("LLM status: %s", resp.status_code)
            resp.raise_for_status()
            data = resp.json()

        content = data["choices"][0]["message"]["content"].strip()
        if not content:
            return None
        return _parse_reply(content)

    except httpx.HTTPStatusError as e:
        logger.warning("LLM HTTP error %s: %s", e.response.status_code, e.response.text[:300])
    except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.warning("LLM reflection failed: %s", e)

    return None
