from datetime import datetime, timezone

import pytest

import entry_store
from conftest import FROZEN_NOW, days_ago
from entry_store import EntryNotFound, validate_mood


def test_validate_mood_canonicalises_case() -> None:
    assert validate_mood("happy") == "Happy"
    assert validate_mood("  CALM ") == "Calm"
    with pytest.raises(ValueError):
        validate_mood("Angry")
    with pytest.raises(ValueError):
        validate_mood(None)


def test_entries_are_per_user_and_latest_first(app) -> None:
    entry_store.create_entry("alice", "Sad", timestamp=days_ago(2))
    entry_store.create_entry("alice", "Happy", note="walk", timestamp=days_ago(0))
    entry_store.create_entry("bob", "Calm", timestamp=days_ago(1))

    entries = entry_store.get_entries_for_user("alice")

    assert [e.mood for e in entries] == ["Happy", "Sad"]
    assert entries[0].note == "walk"
    # stored as naive UTC
    assert entries[0].timestamp == days_ago(0).replace(tzinfo=None)


def test_records_are_detached_snapshots(app) -> None:
    entry = entry_store.create_entry("alice", "Calm", note="tea", timestamp=days_ago(0))

    snapshot = entry.to_record()
    entry_store.update_entry("alice", entry.id, mood="Sad")

    assert snapshot.mood == "Calm"
    assert snapshot.note == "tea"


def test_save_or_update_today_keeps_one_entry_per_day(app) -> None:
    first, created = entry_store.save_or_update_today_mood("alice", "Sad", now=FROZEN_NOW, tz="UTC")
    second, created_again = entry_store.save_or_update_today_mood("alice", "happy", now=FROZEN_NOW, tz="UTC")

    assert created is True
    assert created_again is False
    assert second.id == first.id
    assert [e.mood for e in entry_store.get_entries_for_user("alice")] == ["Happy"]


def test_today_entry_respects_time_zone(app) -> None:
    # 03:00 UTC on Oct 19 is still Oct 18 in Los Angeles
    entry_store.create_entry("alice", "Calm", timestamp=datetime(2026, 10, 19, 3, tzinfo=timezone.utc))

    assert entry_store.get_today_entry("alice", now=FROZEN_NOW, tz="UTC") is not None
    assert entry_store.get_today_entry("alice", now=FROZEN_NOW, tz="America/Los_Angeles") is None


def test_update_entry_changes_mood_and_note(app) -> None:
    entry = entry_store.create_entry("alice", "Sad", timestamp=days_ago(1))

    updated = entry_store.update_entry("alice", entry.id, note="better later")

    assert updated.mood == "Sad"
    assert updated.note == "better later"


def test_cannot_touch_another_users_entry(app) -> None:
    entry = entry_store.create_entry("alice", "Sad", timestamp=days_ago(1))

    with pytest.raises(EntryNotFound):
        entry_store.update_entry("bob", entry.id, mood="Happy")
    with pytest.raises(EntryNotFound):
        entry_store.delete_entry("bob", entry.id)
    with pytest.raises(EntryNotFound):
        entry_store.delete_entry("alice", entry.id + 100)


def test_delete_entry(app) -> None:
    entry = entry_store.create_entry("alice", "Sad", timestamp=days_ago(1))

    entry_store.delete_entry("alice", entry.id)

    assert entry_store.get_entries_for_user("alice") == []


def test_rejects_overlong_note(app) -> None:
    with pytest.raises(ValueError):
        entry_store.create_entry("alice", "Sad", note="x" * (entry_store.MAX_NOTE_LENGTH + 1))


def test_search_matches_mood_or_note_case_insensitively(app) -> None:
    entry_store.create_entry("alice", "Happy", note="Beach day", timestamp=days_ago(3))
    entry_store.create_entry("alice", "Sad", note="rainy", timestamp=days_ago(2))
    entry_store.create_entry("alice", "Calm", note="read at the BEACH", timestamp=days_ago(1))

    by_note = entry_store.search_entries("alice", query="beach")
    by_mood = entry_store.search_entries("alice", query="sad")

    assert [e.mood for e in by_note.entries] == ["Calm", "Happy"]
    assert by_note.total == 2
    assert [e.note for e in by_mood.entries] == ["rainy"]


def test_search_paginates_latest_first(app) -> None:
    for n in range(25):
        entry_store.create_entry("alice", "Calm", note=f"day {n}", timestamp=days_ago(n))

    first = entry_store.search_entries("alice", page=0, page_size=10)
    last = entry_store.search_entries("alice", page=2, page_size=10)

    assert first.total == 25
    assert first.has_more is True
    assert first.entries[0].note == "day 0"
    assert len(last.entries) == 5
    assert last.has_more is False
    assert last.entries[-1].note == "day 24"


def test_search_treats_wildcards_literally(app) -> None:
    entry_store.create_entry("alice", "Calm", note="100% done", timestamp=days_ago(2))
    entry_store.create_entry("alice", "Sad", note="snake_case", timestamp=days_ago(1))
    entry_store.create_entry("alice", "Happy", note="plain", timestamp=days_ago(0))

    assert [e.note for e in entry_store.search_entries("alice", query="%").entries] == ["100% done"]
    assert [e.note for e in entry_store.search_entries("alice", query="_").entries] == ["snake_case"]


def test_page_size_is_capped(app) -> None:
    for n in range(entry_store.MAX_PAGE_SIZE + 5):
        entry_store.create_entry("alice", "Calm", timestamp=days_ago(n % 30, minute=n % 60))

    result = entry_store.search_entries("alice", page_size=1000000)

    assert result.page_size == entry_store.MAX_PAGE_SIZE
    assert len(result.entries) == entry_store.MAX_PAGE_SIZE
    assert result.has_more is True
