"""
Import Candidate Model - Discovered places awaiting admin review.

A candidate is created by the candidate sync when no row shares its
external_ref, scored against the campsite inventory, and then moved through
the review workflow:

    pending -> approved -> imported
    pending -> rejected

Rows are never deleted; rejected and imported are terminal.
"""
import uuid
from typing import Any, Dict, Optional

from models.database import db, utcnow


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_IMPORTED = "imported"

CANDIDATE_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_IMPORTED)
TERMINAL_STATUSES = frozenset([STATUS_REJECTED, STATUS_IMPORTED])

# Allowed (from, to) pairs. Anything else is a conflict.
ALLOWED_TRANSITIONS = frozenset([
    (STATUS_PENDING, STATUS_APPROVED),
    (STATUS_PENDING, STATUS_REJECTED),
    (STATUS_APPROVED, STATUS_IMPORTED),
])


# Campsite fields an admin may override when approving
EDITABLE_FIELDS = frozenset([
    "name",
    "description",
    "address",
    "phone",
    "email",
    "website",
    "price_min",
    "price_max",
    "campsite_type",
])


def is_allowed_transition(current: str, target: str) -> bool:
    return (current, target) in ALLOWED_TRANSITIONS


class ImportCandidate(db.Model):
    """Place record discovered from the external directory, pending review."""

    __tablename__ = "import_candidates"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # ==========================================================================
    # SOURCE IDENTIFICATION
    # ==========================================================================
    external_ref = db.Column(db.String(255), nullable=False, unique=True)
    sync_run_id = db.Column(db.String(36), index=True)

    # ==========================================================================
    # NORMALIZED PLACE DATA
    # ==========================================================================
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(500))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    phone = db.Column(db.String(50))
    website = db.Column(db.String(500))
    place_types = db.Column(db.JSON, nullable=False, default=list)

    # External aggregate signals
    rating = db.Column(db.Float)
    rating_count = db.Column(db.Integer)
    price_level = db.Column(db.Integer)

    # ==========================================================================
    # SCORING (recomputed by the rescoring job while pending)
    # ==========================================================================
    confidence_score = db.Column(db.Float, nullable=False, default=0.0)
    score_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    scoring_version = db.Column(db.String(20), nullable=False)

    is_duplicate = db.Column(db.Boolean, nullable=False, default=False, index=True)
    matched_campsite_id = db.Column(db.String(36))
    match_similarity = db.Column(db.Float)
    match_distance_meters = db.Column(db.Float)

    validation_warnings = db.Column(db.JSON, nullable=False, default=list)

    # Keyword suggestion (services/type_classifier.py)
    suggested_type = db.Column(db.String(30))
    suggested_type_confidence = db.Column(db.Float)

    # ==========================================================================
    # REVIEW
    # ==========================================================================
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    rejection_reason = db.Column(db.String(500))
    review_notes = db.Column(db.Text)
    reviewed_by = db.Column(db.String(100))
    reviewed_at = db.Column(db.DateTime)
    # Admin overrides given at approval, merged into the campsite payload
    approval_edits = db.Column(db.JSON)

    # Lifecycle
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    rescored_at = db.Column(db.DateTime)

    import_record = db.relationship(
        "CandidateImport",
        uselist=False,
        lazy="joined",
        primaryjoin="ImportCandidate.id == foreign(CandidateImport.candidate_id)",
        viewonly=True,
    )

    __table_args__ = (
        db.Index("ix_import_candidates_status_confidence", "status", "confidence_score"),
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'imported')",
            name="import_candidates_status_check",
        ),
        db.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="import_candidates_confidence_check",
        ),
        db.CheckConstraint(
            "is_duplicate = false OR matched_campsite_id IS NOT NULL",
            name="import_candidates_duplicate_match_check",
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def imported_campsite_id(self) -> Optional[str]:
        return self.import_record.campsite_id if self.import_record else None

    def creation_payload(self) -> Dict[str, Any]:
        """
        Fields handed to the campsite-creation collaborator.

        Approval edits win over the normalized fields; the idempotency key
        and coordinates cannot be edited.
        """
        payload = {
            "source_candidate_id": self.id,
            "external_ref": self.external_ref,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "phone": self.phone,
            "website": self.website,
            "rating_average": self.rating,
            "review_count": self.rating_count or 0,
            "campsite_type": self.suggested_type,
        }
        edits = self.approval_edits or {}
        payload.update({k: v for k, v in edits.items() if k in EDITABLE_FIELDS})
        return payload

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "external_ref": self.external_ref,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "phone": self.phone,
            "website": self.website,
            "place_types": self.place_types or [],
            "price_level": self.price_level,
            "suggested_type": self.suggested_type,
            "suggested_type_confidence": self.suggested_type_confidence,
            "confidence_score": self.confidence_score,
            "score_breakdown": self.score_breakdown or {},
            "scoring_version": self.scoring_version,
            "is_duplicate": self.is_duplicate,
            "matched_campsite_id": self.matched_campsite_id,
            "match_similarity": self.match_similarity,
            "match_distance_meters": self.match_distance_meters,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "validation_warnings": self.validation_warnings or [],
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "review_notes": self.review_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "approval_edits": self.approval_edits,
            "imported_campsite_id": self.imported_campsite_id,
            "sync_run_id": self.sync_run_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "rescored_at": self.rescored_at.isoformat() if self.rescored_at else None,
        }

    def __repr__(self):
        return f"<ImportCandidate {self.id[:8] if self.id else '?'} {self.name!r} status={self.status}>"
