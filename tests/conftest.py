from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from models import MoodRecord, db

# A Monday afternoon
FROZEN_NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)


def record(mood, ts, note="", entry_id=0, user_id="u1"):
    return MoodRecord(id=entry_id, user_id=user_id, timestamp=ts, mood=mood, note=note)


def days_ago(days, hour=12, minute=0):
    """A UTC instant ``days`` calendar days before FROZEN_NOW, at the given hour."""
    day = FROZEN_NOW - timedelta(days=days)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def app():
    app = create_app({
        "database_url": "sqlite://",
        "timezone": "UTC",
        "openrouter_api_key": None,
        "allow_init_db": False,
    })
    app.config["TESTING"] = True
    app.config["CLOCK"] = lambda: FROZEN_NOW
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
