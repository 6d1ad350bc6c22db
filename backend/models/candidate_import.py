"""
Candidate Import Model - Link from an imported candidate to the campsite it produced.

Kept outside import_candidates so the unique constraint on candidate_id is the
at-most-once guard for imports: a second link for the same candidate fails
at INSERT time.
"""
import uuid

from models.database import db, utcnow


class CandidateImport(db.Model):
    """Result of importing one candidate into the campsite inventory."""

    __tablename__ = "candidate_imports"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    candidate_id = db.Column(
        db.String(36),
        db.ForeignKey("import_candidates.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    campsite_id = db.Column(db.String(36), nullable=False, index=True)
    imported_by = db.Column(db.String(100))
    imported_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "candidate_id": self.candidate_id,
            "campsite_id": self.campsite_id,
            "imported_by": self.imported_by,
            "imported_at": self.imported_at.isoformat() if self.imported_at else None,
        }

    def __repr__(self):
        return f"<CandidateImport {self.candidate_id[:8]} -> {self.campsite_id[:8]}>"
