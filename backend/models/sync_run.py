"""
Sync Run Model - Job tracking for candidate sync executions.

Tracks:
- Run lifecycle (running -> completed/failed/cancelled)
- Statistics (records seen, candidates created, skips, duplicates flagged)
- Configuration snapshot for reproducibility
- Cancellation requests (honoured between batches)
"""
import uuid

from models.database import db, utcnow


RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"
RUN_CANCELLED = "cancelled"

STAT_FIELDS = (
    "batches_completed",
    "records_seen",
    "candidates_created",
    "skipped_existing",
    "skipped_invalid",
    "duplicates_flagged",
)


class SyncRun(db.Model):
    """Tracks individual candidate sync executions."""

    __tablename__ = "sync_runs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Run lifecycle
    status = db.Column(db.String(20), nullable=False, default=RUN_RUNNING, index=True)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime)
    cancel_requested = db.Column(db.Boolean, nullable=False, default=False)

    # Run statistics
    batches_completed = db.Column(db.Integer, nullable=False, default=0)
    records_seen = db.Column(db.Integer, nullable=False, default=0)
    candidates_created = db.Column(db.Integer, nullable=False, default=0)
    skipped_existing = db.Column(db.Integer, nullable=False, default=0)
    skipped_invalid = db.Column(db.Integer, nullable=False, default=0)
    duplicates_flagged = db.Column(db.Integer, nullable=False, default=0)

    # Configuration snapshot (for reproducibility)
    config_snapshot = db.Column(db.JSON, nullable=False, default=dict)

    # Error tracking
    error_kind = db.Column(db.String(30))
    error_message = db.Column(db.Text)

    # Metadata
    triggered_by = db.Column(db.String(100), default="manual")  # manual, cron, admin id

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('running', 'completed', 'failed', 'cancelled')",
            name="sync_runs_status_check",
        ),
    )

    def add_stats(self, stats: dict):
        """Accumulate per-batch counters."""
        for name in STAT_FIELDS:
            if name in stats:
                setattr(self, name, (getattr(self, name) or 0) + stats[name])

    def complete(self):
        """Mark run as completed."""
        self.status = RUN_COMPLETED
        self.completed_at = utcnow()

    def cancel(self):
        """Mark run as cancelled; committed candidates stay."""
        self.status = RUN_CANCELLED
        self.completed_at = utcnow()

    def fail(self, kind: str, message: str):
        """Mark run as failed with error."""
        self.status = RUN_FAILED
        self.completed_at = utcnow()
        self.error_kind = kind
        self.error_message = message

    @property
    def is_finished(self) -> bool:
        return self.status != RUN_RUNNING

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if not self.started_at:
            return 0
        end = self.completed_at or utcnow()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "status": self.status,
            "triggered_by": self.triggered_by,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "cancel_requested": self.cancel_requested,
            "config_snapshot": self.config_snapshot or {},
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }
        for name in STAT_FIELDS:
            data[name] = getattr(self, name) or 0
        return data

    def __repr__(self):
        return f"<SyncRun {self.id[:8]} {self.status}>"
