"""
Sync Lock Model - Leased, named lock rows.

One row per held lock. Holding the row (matching token, unexpired lease) is
what grants exclusivity, so the guarantee spans every process sharing the
database.
"""
from models.database import db, utcnow


class SyncLock(db.Model):
    __tablename__ = "sync_locks"

    name = db.Column(db.String(100), primary_key=True)
    token = db.Column(db.String(36), nullable=False)
    holder = db.Column(db.String(255))
    acquired_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "holder": self.holder,
            "acquired_at": self.acquired_at.isoformat() if self.acquired_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    def __repr__(self):
        return f"<SyncLock {self.name} holder={self.holder}>"
