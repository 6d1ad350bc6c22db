"""
Database handle shared by every model.

Flask contexts bind it with db.init_app(app); scripts and the CLI go through
create_app() so they get the same engine options.
"""
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns (no tz stored)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
