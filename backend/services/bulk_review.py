"""
Bulk Review - Apply approve/reject to many candidates, one at a time.

Each id goes through the same CandidateReviewService method a single-item
request would use, so CAS and import semantics are identical. Results come
back in input order; a failing id never stops the ids after it.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from services.candidate_review import CandidateReviewService
from services.result import ErrorKind, Result

logger = logging.getLogger(__name__)


MAX_BULK_IDS = 100
BULK_ACTIONS = ("approve", "reject")


@dataclass
class BulkOutcome:
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r["ok"])

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    def to_dict(self) -> dict:
        return {
            "results": self.results,
            "summary": {
                "total": len(self.results),
                "succeeded": self.succeeded,
                "failed": self.failed,
            },
        }


def validate_bulk_request(ids: List[str], action: str, reason: Optional[str]) -> Optional[Result]:
    if action not in BULK_ACTIONS:
        return Result.err(
            ErrorKind.VALIDATION_ERROR,
            f"action must be one of {', '.join(BULK_ACTIONS)}",
            field="action",
        )
    if not ids:
        return Result.err(ErrorKind.VALIDATION_ERROR, "ids must not be empty", field="ids")
    if len(ids) > MAX_BULK_IDS:
        return Result.err(
            ErrorKind.VALIDATION_ERROR,
            f"At most {MAX_BULK_IDS} ids per request",
            field="ids",
        )
    if action == "reject" and not (reason or "").strip():
        return Result.err(ErrorKind.VALIDATION_ERROR, "reason is required for reject", field="reason")
    return None


def _item_result(candidate_id: str, result: Result) -> Dict[str, Any]:
    if result.is_err:
        return {
            "id": candidate_id,
            "ok": False,
            "error": {"kind": result.error.kind.value, "message": result.error.message},
        }
    value = result.value
    # approve returns an ImportOutcome, reject the candidate itself
    candidate = getattr(value, "candidate", value)
    item = {"id": candidate_id, "ok": True, "status": candidate.status}
    if hasattr(value, "campsite_id"):
        item["campsite_id"] = value.campsite_id
    return item


def apply_bulk_action(
    review: CandidateReviewService,
    ids: List[str],
    action: str,
    actor: str,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Result[BulkOutcome]:
    """
    Run `action` for every id, in order.

    Repeated ids are processed again; the later occurrence sees the status
    left by the earlier one and reports CONFLICT.
    """
    invalid = validate_bulk_request(ids, action, reason)
    if invalid is not None:
        return invalid

    outcome = BulkOutcome()
    for candidate_id in ids:
        try:
            if action == "approve":
                result = review.approve(candidate_id, actor)
            else:
                result = review.reject(candidate_id, actor, reason, notes)
        except Exception as e:
            logger.exception(f"Bulk {action} failed for candidate {candidate_id}")
            review.store.session.rollback()
            result = Result.err(ErrorKind.PERSISTENCE_ERROR, f"Unexpected error: {e}")
        outcome.results.append(_item_result(candidate_id, result))

    logger.info(
        f"Bulk {action} by {actor}: {outcome.succeeded} succeeded, {outcome.failed} failed"
    )
    return Result.ok(outcome)
