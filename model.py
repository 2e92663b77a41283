from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone

db = SQLAlchemy()

PRIORITIES = ("low", "medium", "high")
DEFAULT_CATEGORY = "General"
DEFAULT_PRIORITY = "medium"


def _utcnow():
    return datetime.now(timezone.utc)


def _isoformat(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(254), unique=True, nullable=False, index=True)
    password = db.Column(db.String(256), nullable=False)  # werkzeug hash, never the raw value
    created = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        # The public identity of an account is its normalized email
        return {"id": self.email, "name": self.name, "email": self.email}


class Category(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    user_id = db.Column(db.String(254), nullable=False, index=True)
    created = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "userId": self.user_id,
            "createdAt": _isoformat(self.created),
        }


class Task(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(500), nullable=False)
    # Category *name*, not a foreign key; cascades match on it
    category = db.Column(db.String(200), nullable=False, default=DEFAULT_CATEGORY)
    priority = db.Column(db.String(10), nullable=False, default=DEFAULT_PRIORITY)
    complete = db.Column(db.Boolean, nullable=False, default=False)
    due = db.Column(db.Date, nullable=True)
    image = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.String(254), nullable=False, index=True)
    created = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (db.Index("ix_task_user_category", "user_id", "category"),)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "name": self.title,
            "category": self.category,
            "priority": self.priority,
            "isComplete": bool(self.complete),
            "userId": self.user_id,
            "dueDate": self.due.isoformat() if self.due else None,
            "image": self.image,
            "createdAt": _isoformat(self.created),
        }
