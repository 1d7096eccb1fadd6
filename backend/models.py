from dataclasses import dataclass
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Naive UTC now; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class MoodRecord:
    """Read-only snapshot of one entry, detached from the session."""

    id: int
    user_id: str
    timestamp: datetime
    mood: str
    note: str = ""


class MoodEntry(db.Model):
    __tablename__ = "mood_entries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    # When the mood was felt, naive UTC
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    mood = db.Column(db.String(50), nullable=False)       # e.g., "Happy"
    note = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_record(self) -> MoodRecord:
        return MoodRecord(
            id=self.id,
            user_id=self.user_id,
            timestamp=self.timestamp,
            mood=self.mood,
            note=self.note or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "mood": self.mood,
            "note": self.note or "",
            "timestamp": self.timestamp.isoformat() + "Z" if self.timestamp else None,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
        }

    def __repr__(self):
        return f"<MoodEntry id={self.id} user={self.user_id} mood={self.mood}>"
