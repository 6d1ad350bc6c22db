"""
Candidate Review Service - Admin decisions on import candidates.

State machine (no other edges, no way out of rejected/imported):

    pending --approve--> approved --import--> imported
    pending --reject---> rejected

approve() runs in two steps around the external call:
  1. CAS pending -> approved (reviewed_by / reviewed_at recorded)
  2. create the campsite through the CampsiteCreator, then record the
     import link and CAS approved -> imported in one transaction

If step 2 fails the candidate stays approved and the caller gets a
retryable UPSTREAM_FAILURE; retry_import() runs step 2 again.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.database import utcnow
from models.import_candidate import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    ImportCandidate,
)
from services.campsite_creator import CampsiteCreationError, CampsiteCreator
from services.campsite_inventory import records_near
from services.candidate_store import CandidateStore
from services.duplicate_matcher import find_duplicates
from services.ingestion_config import MatcherSettings
from services.result import ErrorKind, Result

logger = logging.getLogger(__name__)


MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 2000


@dataclass(frozen=True)
class ImportOutcome:
    campsite_id: str
    candidate: ImportCandidate

    def to_dict(self) -> dict:
        return {
            "campsite_id": self.campsite_id,
            "candidate": self.candidate.to_dict(),
        }


class CandidateReviewService:
    """
    Approve, reject and re-import candidates.

    Usage:
        service = CandidateReviewService(CandidateStore(), LocalCampsiteCreator())
        result = service.approve(candidate_id, actor="admin-7")
        if result.is_err and result.error.retryable:
            service.retry_import(candidate_id, actor="admin-7")
    """

    def __init__(
        self,
        store: CandidateStore,
        creator: CampsiteCreator,
        matcher_settings: Optional[MatcherSettings] = None,
    ):
        self.store = store
        self.creator = creator
        self.matcher_settings = matcher_settings or MatcherSettings()

    # =========================================================================
    # DECISIONS
    # =========================================================================

    def approve(
        self,
        candidate_id: str,
        actor: str,
        edits: Optional[Dict[str, Any]] = None,
    ) -> Result[ImportOutcome]:
        """
        Approve a pending candidate and import it.

        edits (already validated) are stored with the approval, so a later
        retry_import() creates the same campsite.
        """
        approved = self.store.transition(
            candidate_id,
            STATUS_PENDING,
            STATUS_APPROVED,
            reviewed_by=actor,
            reviewed_at=utcnow(),
            approval_edits=edits or None,
        )
        if approved.is_err:
            return approved
        logger.info(f"Candidate {candidate_id} approved by {actor}")
        return self._import(approved.value, actor)

    def retry_import(self, candidate_id: str, actor: str) -> Result[ImportOutcome]:
        """Re-run campsite creation for a candidate stuck in approved."""
        found = self.store.get(candidate_id)
        if found.is_err:
            return found
        candidate = found.value
        if candidate.status != STATUS_APPROVED:
            return Result.err(
                ErrorKind.CONFLICT,
                f"Candidate is {candidate.status}, expected {STATUS_APPROVED}",
                candidate_id=candidate_id,
                current_status=candidate.status,
            )
        logger.info(f"Retrying import of candidate {candidate_id} for {actor}")
        return self._import(candidate, actor)

    def reject(
        self,
        candidate_id: str,
        actor: str,
        reason: str,
        notes: Optional[str] = None,
    ) -> Result[ImportCandidate]:
        reason = (reason or "").strip()
        if not reason:
            return Result.err(ErrorKind.VALIDATION_ERROR, "Rejection reason is required", field="reason")
        if len(reason) > MAX_REASON_LENGTH:
            return Result.err(
                ErrorKind.VALIDATION_ERROR,
                f"Rejection reason must be at most {MAX_REASON_LENGTH} characters",
                field="reason",
            )
        notes = (notes or "").strip() or None
        if notes and len(notes) > MAX_NOTES_LENGTH:
            return Result.err(
                ErrorKind.VALIDATION_ERROR,
                f"Notes must be at most {MAX_NOTES_LENGTH} characters",
                field="notes",
            )

        result = self.store.transition(
            candidate_id,
            STATUS_PENDING,
            STATUS_REJECTED,
            rejection_reason=reason,
            review_notes=notes,
            reviewed_by=actor,
            reviewed_at=utcnow(),
        )
        if result.is_ok:
            logger.info(f"Candidate {candidate_id} rejected by {actor}: {reason}")
        return result

    # =========================================================================
    # READ MODEL
    # =========================================================================

    def describe(self, candidate_id: str) -> Result[Dict[str, Any]]:
        """Candidate projection plus freshly ranked duplicate matches."""
        found = self.store.get(candidate_id)
        if found.is_err:
            return found
        candidate = found.value

        inventory = records_near(
            candidate.latitude,
            candidate.longitude,
            self.matcher_settings.radius_meters,
            session=self.store.session,
        )
        inventory = [r for r in inventory if r.id != candidate.imported_campsite_id]
        outcome = find_duplicates(candidate, inventory, self.matcher_settings)

        data = candidate.to_dict()
        data["duplicate_matches"] = [m.to_dict() for m in outcome.matches]
        data["import"] = candidate.import_record.to_dict() if candidate.import_record else None
        return Result.ok(data)

    # =========================================================================
    # IMPORT STEP
    # =========================================================================

    def _import(self, candidate: ImportCandidate, actor: str) -> Result[ImportOutcome]:
        candidate_id = candidate.id
        payload = candidate.creation_payload()
        try:
            campsite_id = self.creator.create_campsite(payload)
        except (CampsiteCreationError, TimeoutError) as e:
            logger.warning(f"Campsite creation failed for candidate {candidate_id}: {e}")
            return Result.err(
                ErrorKind.UPSTREAM_FAILURE,
                f"Campsite creation failed: {e}",
                candidate_id=candidate_id,
            )

        completed = self.store.complete_import(candidate_id, campsite_id, actor)
        if completed.is_err:
            return completed
        return Result.ok(ImportOutcome(campsite_id=campsite_id, candidate=completed.value))
