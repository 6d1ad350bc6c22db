"""
Candidate Review API Routes (mounted at /api/admin)

Endpoints for reviewing campsites discovered by the candidate sync:
- GET  /api/admin/candidates - List candidates (filters + paging)
- GET  /api/admin/candidates/{id} - Candidate detail with duplicate matches
- POST /api/admin/candidates/{id}/approve - Approve and import
- POST /api/admin/candidates/{id}/retry-import - Re-run a failed import
- POST /api/admin/candidates/{id}/reject - Reject with a reason
- POST /api/admin/candidates/bulk - Approve/reject many ids
- POST /api/admin/candidates/sync - Trigger a sync run
- GET  /api/admin/candidates/sync/runs - List sync runs
- GET  /api/admin/candidates/sync/runs/{id} - Sync run detail
- POST /api/admin/candidates/sync/runs/{id}/cancel - Request cancellation

Callers are already authorized; X-Admin-Id names the acting admin.
"""
import logging

from flask import Blueprint, current_app, g, jsonify, request
from pydantic import ValidationError as PydanticValidationError

from api.contracts.pydantic_models import (
    ApproveRequest,
    BulkActionRequest,
    RejectRequest,
    SyncTriggerRequest,
)
from api.contracts.pydantic_models.base import summarize_errors
from api.middleware import error_from_result, get_actor, make_error_response
from models.database import db
from models.import_candidate import CANDIDATE_STATUSES
from services.bulk_review import apply_bulk_action
from services.campsite_creator import CampsiteCreator, HttpCampsiteCreator, LocalCampsiteCreator
from services.candidate_review import CandidateReviewService
from services.candidate_store import CandidateStore
from services.candidate_sync import CandidateSyncService, start_background_sync
from services.ingestion_config import is_sync_enabled, settings_from_app_config
from services.places_client import GooglePlacesSource, PlaceSource, PlaceSourceError
from utils.normalize import (
    ValidationError,
    to_bool,
    to_choice,
    to_float,
    to_int,
    validation_error_response,
)

logger = logging.getLogger(__name__)

candidates_bp = Blueprint("candidates", __name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


# =============================================================================
# WIRING
# =============================================================================

def get_campsite_creator() -> CampsiteCreator:
    """CAMPSITE_CREATOR from config, else HTTP when CAMPSITE_API_URL is set, else local."""
    creator = current_app.config.get("CAMPSITE_CREATOR")
    if creator is not None:
        return creator
    if current_app.config.get("CAMPSITE_API_URL"):
        return HttpCampsiteCreator(
            base_url=current_app.config["CAMPSITE_API_URL"],
            api_token=current_app.config.get("CAMPSITE_API_TOKEN"),
        )
    return LocalCampsiteCreator(db.session)


def get_place_source() -> PlaceSource:
    """
    PLACE_SOURCE from config, else Google Places.

    Raises:
        PlaceSourceError: no source configured (no PLACES_API_KEY)
    """
    source = current_app.config.get("PLACE_SOURCE")
    if source is not None:
        return source
    return GooglePlacesSource(api_key=current_app.config.get("PLACES_API_KEY"))


def get_review_service() -> CandidateReviewService:
    """Get or create review service instance for this request."""
    if not hasattr(g, "review_service"):
        matcher, _ = settings_from_app_config(current_app.config)
        g.review_service = CandidateReviewService(
            CandidateStore(db.session),
            get_campsite_creator(),
            matcher_settings=matcher,
        )
    return g.review_service


def build_sync_service() -> CandidateSyncService:
    config = dict(current_app.config)
    matcher, scorer = settings_from_app_config(config)
    return CandidateSyncService(
        db.session,
        matcher_settings=matcher,
        scorer_settings=scorer,
        lock_ttl_seconds=config.get("SYNC_LOCK_TTL_SECONDS"),
        max_places=config.get("SYNC_MAX_PLACES"),
    )


def _parse_body(model):
    """Validate the JSON body; returns (model, None) or (None, error response)."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None, make_error_response("VALIDATION_ERROR", "Request body must be a JSON object", 400)
    try:
        return model.model_validate(payload), None
    except PydanticValidationError as e:
        return None, make_error_response(
            "VALIDATION_ERROR",
            "Invalid request body",
            400,
            details={"errors": summarize_errors(e)},
        )


# =============================================================================
# CANDIDATE ENDPOINTS
# =============================================================================

@candidates_bp.route("/candidates", methods=["GET"])
def list_candidates():
    """
    List candidates for review.

    Query params:
        status: pending | approved | rejected | imported
        isDuplicate: true/false
        minConfidence: 0..1
        limit: 1..100 (default 20)
        offset: >= 0 (default 0)

    Returns:
        {total, limit, offset, candidates}
    """
    try:
        status = to_choice(request.args.get("status"), CANDIDATE_STATUSES, field="status")
        is_duplicate = to_bool(request.args.get("isDuplicate"), default=None, field="isDuplicate")
        min_confidence = to_float(
            request.args.get("minConfidence"), min_value=0.0, max_value=1.0, field="minConfidence"
        )
        limit = to_int(
            request.args.get("limit"),
            default=DEFAULT_PAGE_SIZE,
            min_value=1,
            max_value=MAX_PAGE_SIZE,
            field="limit",
        )
        offset = to_int(request.args.get("offset"), default=0, min_value=0, field="offset")
    except ValidationError as e:
        return validation_error_response(e)

    result = CandidateStore(db.session).list_candidates(
        status=status,
        is_duplicate=is_duplicate,
        min_confidence=min_confidence,
        limit=limit,
        offset=offset,
    )
    if result.is_err:
        return error_from_result(result.error)

    total, candidates = result.value
    return jsonify({
        "total": total,
        "limit": limit,
        "offset": offset,
        "candidates": [c.to_dict() for c in candidates],
    })


@candidates_bp.route("/candidates/<candidate_id>", methods=["GET"])
def get_candidate(candidate_id: str):
    """Candidate with freshly ranked duplicate matches and its import link."""
    result = get_review_service().describe(candidate_id)
    if result.is_err:
        return error_from_result(result.error)
    return jsonify(result.value)


@candidates_bp.route("/candidates/<candidate_id>/approve", methods=["POST"])
def approve_candidate(candidate_id: str):
    """
    Approve a pending candidate and import it as a campsite.

    Body (optional):
        edits: {name, description, address, phone, email, website,
                priceMin, priceMax, campsiteType} overriding the candidate

    Returns:
        {campsite_id, candidate}; 502 with retryable=true when campsite
        creation failed (candidate stays approved, use retry-import)
    """
    body, error = _parse_body(ApproveRequest)
    if error:
        return error

    edits = body.edits.changes() if body.edits else None
    result = get_review_service().approve(candidate_id, get_actor(), edits=edits)
    if result.is_err:
        return error_from_result(result.error)
    return jsonify(result.value.to_dict())


@candidates_bp.route("/candidates/<candidate_id>/retry-import", methods=["POST"])
def retry_import(candidate_id: str):
    """Re-run campsite creation for an approved candidate."""
    result = get_review_service().retry_import(candidate_id, get_actor())
    if result.is_err:
        return error_from_result(result.error)
    return jsonify(result.value.to_dict())


@candidates_bp.route("/candidates/<candidate_id>/reject", methods=["POST"])
def reject_candidate(candidate_id: str):
    """
    Reject a pending candidate.

    Body:
        reason: str (required, <= 500 chars)
        notes: Optional[str]
    """
    body, error = _parse_body(RejectRequest)
    if error:
        return error

    result = get_review_service().reject(candidate_id, get_actor(), body.reason, body.notes)
    if result.is_err:
        return error_from_result(result.error)
    return jsonify({"candidate": result.value.to_dict()})


@candidates_bp.route("/candidates/bulk", methods=["POST"])
def bulk_action():
    """
    Approve or reject up to 100 candidates.

    Body:
        ids: List[str]
        action: 'approve' | 'reject'
        reason: required for reject

    Returns:
        {results: [{id, ok, status | error}], summary: {total, succeeded, failed}}
    """
    body, error = _parse_body(BulkActionRequest)
    if error:
        return error

    result = apply_bulk_action(
        get_review_service(),
        body.ids,
        body.action,
        get_actor(),
        reason=body.reason,
        notes=body.notes,
    )
    if result.is_err:
        return error_from_result(result.error)
    return jsonify(result.value.to_dict())


# =============================================================================
# SYNC ENDPOINTS
# =============================================================================

@candidates_bp.route("/candidates/sync", methods=["POST"])
def trigger_sync():
    """
    Start a candidate sync run.

    Body:
        maxPlaces: Optional[int]

    Returns:
        202 {run}; 409 if a sync is already running; 503 if sync is disabled
    """
    if not is_sync_enabled():
        return make_error_response(
            "SERVICE_UNAVAILABLE",
            "Candidate sync is disabled",
            503,
            hint="Set CANDIDATE_SYNC_ENABLED=true to allow syncs",
        )

    body, error = _parse_body(SyncTriggerRequest)
    if error:
        return error

    try:
        source = get_place_source()
    except PlaceSourceError as e:
        logger.error(f"No place source available: {e}")
        return make_error_response("SERVICE_UNAVAILABLE", str(e), 503)

    actor = get_actor()
    if current_app.config.get("SYNC_INLINE"):
        result = build_sync_service().run(source, triggered_by=actor, max_places=body.max_places)
    else:
        result = start_background_sync(
            current_app._get_current_object(),
            source,
            triggered_by=actor,
            max_places=body.max_places,
            service_factory=build_sync_service,
        )

    if result.is_err:
        if result.error.context.get("disabled"):
            return make_error_response("SERVICE_UNAVAILABLE", result.error.message, 503)
        return error_from_result(result.error)
    return jsonify({"run": result.value.to_dict()}), 202


@candidates_bp.route("/candidates/sync/runs", methods=["GET"])
def list_sync_runs():
    try:
        limit = to_int(
            request.args.get("limit"),
            default=DEFAULT_PAGE_SIZE,
            min_value=1,
            max_value=MAX_PAGE_SIZE,
            field="limit",
        )
        offset = to_int(request.args.get("offset"), default=0, min_value=0, field="offset")
    except ValidationError as e:
        return validation_error_response(e)

    total, runs = build_sync_service().list_runs(limit=limit, offset=offset)
    return jsonify({
        "total": total,
        "limit": limit,
        "offset": offset,
        "runs": [r.to_dict() for r in runs],
    })


@candidates_bp.route("/candidates/sync/runs/<run_id>", methods=["GET"])
def get_sync_run(run_id: str):
    result = build_sync_service().get_run(run_id)
    if result.is_err:
        return error_from_result(result.error)
    return jsonify({"run": result.value.to_dict()})


@candidates_bp.route("/candidates/sync/runs/<run_id>/cancel", methods=["POST"])
def cancel_sync_run(run_id: str):
    """Ask a running sync to stop before its next batch."""
    result = build_sync_service().cancel_sync(run_id)
    if result.is_err:
        return error_from_result(result.error)
    return jsonify({"run": result.value.to_dict()})
