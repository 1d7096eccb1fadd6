import logging
from datetime import datetime, timezone

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError

import entry_store
from config import load_config
from entry_store import EntryNotFound
from gpt_service import generate_trend_reflection
from insights_service import (
    NEGATIVE_DAYS_ALERT,
    build_insight,
    count_negative_days,
    greeting,
    pick_recommendations,
)
from models import db
from mood_display import (
    decorate_mood,
    describe_entry,
    format_percentage,
    format_short_date,
    mood_to_color,
)
from trends_service import as_utc, compute_trend_statistics

logger = logging.getLogger(__name__)


def _utc_clock():
    return datetime.now(timezone.utc)


def create_app(overrides=None):
    """Build the app. ``overrides`` replaces Config fields (tests use it)."""
    config = load_config(overrides)
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = config.database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MOODTRENDS"] = config
    # Frozen by tests; every request reads it once.
    app.config["CLOCK"] = _utc_clock

    # Init DB
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # --- CORS (allow your deployed frontend origin if provided) ---
    if config.frontend_origin:
        CORS(app, resources={r"/*": {"origins": [config.frontend_origin]}})
    else:
        # Dev fallback: allow all (ok for local dev; tighten for prod)
        CORS(app)

    register_routes(app)
    logger.info("MoodTrends ready (timezone=%s)", config.timezone)
    return app


# ---------- Helpers ----------

def _config():
    return current_app.config["MOODTRENDS"]


def _now():
    return current_app.config["CLOCK"]()


def _error(message, status):
    return jsonify({"error": message}), status


def _store_failure(message):
    db.session.rollback()
    logger.exception(message)
    return _error(message, 500)


def _parse_timestamp(raw):
    """ISO-8601 string or epoch milliseconds; None means now."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValueError("Invalid timestamp")
    try:
        if isinstance(raw, (int, float)):
            return as_utc(raw)
        return as_utc(datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00")))
    except (OverflowError, OSError, ValueError):
        raise ValueError(f"Invalid timestamp {raw!r}; use ISO-8601 or epoch milliseconds") from None


def _entry_json(entry, zone):
    body = entry.to_dict()
    body["display"] = describe_entry(entry.mood, entry.timestamp, zone)
    return body


def _user_records(user_id):
    # oldest first, so equal timestamps keep insertion order
    return [e.to_record() for e in reversed(entry_store.get_entries_for_user(user_id))]


# ---------- Routes ----------

def register_routes(app):

    @app.route("/health")
    def health():
        """Simple health check + DB connectivity test."""
        db_ok = True
        try:
            with db.engine.connect() as conn:
                conn.execute(db.text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            db_ok = False
        return jsonify({
            "ok": True,
            "db_ok": db_ok,
            "timezone": _config().timezone,
            "time": _now().isoformat(),
        }), 200

    @app.route("/users/<user_id>/entries", methods=["GET"])
    def list_entries(user_id):
        """History, latest first, with search and pagination."""
        page = request.args.get("page", 0, type=int)
        page_size = request.args.get("page_size", entry_store.DEFAULT_PAGE_SIZE, type=int)
        try:
            result = entry_store.search_entries(
                user_id, query=request.args.get("q", ""), page=page, page_size=page_size
            )
        except SQLAlchemyError:
            return _store_failure("Failed to load entries")
        body = result.to_dict()
        body["entries"] = [_entry_json(e, _config().zone) for e in result.entries]
        return jsonify(body), 200

    @app.route("/users/<user_id>/entries", methods=["POST"])
    def create_entry(user_id):
        data = request.get_json(silent=True) or {}
        try:
            entry = entry_store.create_entry(
                user_id,
                mood=data.get("mood"),
                note=data.get("note") or "",
                timestamp=_parse_timestamp(data.get("timestamp")) or _now(),
            )
        except ValueError as e:
            return _error(str(e), 400)
        except SQLAlchemyError:
            return _store_failure("Failed to save entry")
        return jsonify(entry.to_dict()), 201

    @app.route("/users/<user_id>/mood/today", methods=["GET"])
    def today_mood(user_id):
        try:
            entry = entry_store.get_today_entry(user_id, now=_now(), tz=_config().zone)
        except SQLAlchemyError:
            return _store_failure("Failed to load entries")
        return jsonify({"entry": _entry_json(entry, _config().zone) if entry else None}), 200

    @app.route("/users/<user_id>/mood/today", methods=["PUT"])
    def save_today_mood(user_id):
        """One entry per day: update today's mood or create it."""
        data = request.get_json(silent=True) or {}
        try:
            entry, created = entry_store.save_or_update_today_mood(
                user_id, data.get("mood"), now=_now(), tz=_config().zone
            )
        except ValueError as e:
            return _error(str(e), 400)
        except SQLAlchemyError:
            return _store_failure("Failed to save mood")
        return jsonify({"entry": entry.to_dict(), "created": created}), 201 if created else 200

    @app.route("/users/<user_id>/entries/<int:entry_id>", methods=["PATCH"])
    def edit_entry(user_id, entry_id: int):
        data = request.get_json(silent=True) or {}
        if "mood" not in data and "note" not in data:
            return _error("Nothing to update; send 'mood' and/or 'note'", 400)
        try:
            entry = entry_store.update_entry(
                user_id, entry_id, mood=data.get("mood"), note=data.get("note")
            )
        except EntryNotFound:
            return _error("Not found", 404)
        except ValueError as e:
            return _error(str(e), 400)
        except SQLAlchemyError:
            return _store_failure("Failed to update entry")
        return jsonify(entry.to_dict()), 200

    @app.route("/users/<user_id>/entries/<int:entry_id>", methods=["DELETE"])
    def delete_entry(user_id, entry_id: int):
        """Delete a single entry by id."""
        try:
            entry_store.delete_entry(user_id, entry_id)
        except EntryNotFound:
            return _error("Not found", 404)
        except SQLAlchemyError:
            return _store_failure("Failed to delete entry")
        return jsonify({"ok": True, "deleted": entry_id}), 200

    @app.route("/users/<user_id>/trends", methods=["GET"])
    def trends(user_id):
        """Recompute every trend statistic from the user's full history."""
        try:
            records = _user_records(user_id)
        except SQLAlchemyError:
            return _store_failure("Failed to load entries")

        stats = compute_trend_statistics(records, now=_now(), tz=_config().zone)
        payload = stats.to_dict()
        payload["positive_ratio_label"] = format_percentage(stats.positive_ratio)
        payload["most_frequent_mood_display"] = decorate_mood(stats.most_frequent_mood)
        payload["mood_colors"] = {mood: mood_to_color(mood) for mood in stats.mood_distribution}
        # chart x-axis
        payload["series_labels"] = [format_short_date(day.date) for day in stats.daily_score_series]
        return jsonify(payload), 200

    @app.route("/users/<user_id>/insights", methods=["GET"])
    def insights(user_id):
        try:
            records = _user_records(user_id)
        except SQLAlchemyError:
            return _store_failure("Failed to load entries")

        now, zone = _now(), _config().zone
        insight = build_insight(records)
        negative_days = count_negative_days(records, now=now, tz=zone)

        reflection = None
        if request.args.get("ai", "").lower() in {"1", "true", "yes"}:
            stats = compute_trend_statistics(records, now=now, tz=zone)
            reply = generate_trend_reflection(stats, _config())
            if reply:
                reflection = {"summary": reply[0], "affirmation": reply[1]}

        return jsonify({
            "greeting": greeting(now, zone),
            "insight": insight.to_dict(),
            "recommendations": pick_recommendations(insight.kind),
            "negative_days": negative_days,
            "check_in_suggested": negative_days >= NEGATIVE_DAYS_ALERT,
            "reflection": reflection,
        }), 200

    @app.route("/init-db")
    def init_db():
        """Optional: safe-guarded table creation endpoint (disable in prod)."""
        if not _config().allow_init_db:
            return _error("init disabled", 403)
        db.create_all()
        return jsonify({"ok": True, "message": "Tables created"}), 200


if __name__ == "__main__":
    app = create_app()
    app.run(
        host="0.0.0.0",
        port=app.config["MOODTRENDS"].port,
        debug=True
    )
