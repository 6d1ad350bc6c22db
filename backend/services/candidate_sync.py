"""
Candidate Sync Service - Pulls places from a source and files new candidates.

Workflow:
1. Check the kill switch and take the sync lease (one sync at a time,
   across every process sharing the database)
2. Create a sync_runs row with a config snapshot
3. Per batch from the place source:
   - honour a cancel request, renew the lease
   - normalize records (invalid ones are counted and skipped)
   - skip external refs that already have a candidate
   - match against nearby inventory, score, insert, commit
4. Mark the run completed / cancelled / failed and release the lease

Batches already committed stay when a later batch fails or the run is
cancelled.

Also here: cancel_sync() and rescore_pending(), the job that recomputes
scores and duplicate flags for every pending candidate.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from requests.exceptions import RequestException
from sqlalchemy.exc import SQLAlchemyError

from models.database import db
from models.import_candidate import STATUS_PENDING, ImportCandidate
from models.sync_run import RUN_RUNNING, STAT_FIELDS, SyncRun
from services.campsite_inventory import records_near
from services.candidate_store import CandidateStore
from services.confidence_scorer import (
    SCORING_VERSION,
    build_validation_warnings,
    score_candidate,
)
from services.duplicate_matcher import find_duplicates
from services.ingestion_config import (
    SYNC_LOCK_NAME,
    MatcherSettings,
    ScorerSettings,
    get_lock_ttl_seconds,
    get_max_places,
    is_sync_enabled,
)
from services.place_normalizer import (
    NormalizedPlace,
    PlaceNormalizationError,
    RawPlace,
    normalize_place,
)
from services.places_client import PlaceSource, PlaceSourceError
from services.result import ErrorKind, Result
from services.sync_lock import LeaseLostError, SyncLease
from services.type_classifier import suggest_for

logger = logging.getLogger(__name__)


class CandidateSyncService:
    """
    Orchestrates candidate sync runs.

    Example:
        service = CandidateSyncService()
        result = service.run(StaticPlaceSource(batches), triggered_by="cli")
        if result.is_ok:
            print(result.value.to_dict())
    """

    RESCORE_COMMIT_EVERY = 100

    def __init__(
        self,
        session=None,
        matcher_settings: Optional[MatcherSettings] = None,
        scorer_settings: Optional[ScorerSettings] = None,
        lock_ttl_seconds: Optional[int] = None,
        max_places: Optional[int] = None,
        lock_name: str = SYNC_LOCK_NAME,
    ):
        self.session = session or db.session
        self.store = CandidateStore(self.session)
        self.matcher_settings = matcher_settings or MatcherSettings.from_env()
        self.scorer_settings = scorer_settings or ScorerSettings.from_env()
        self.lock_ttl_seconds = lock_ttl_seconds or get_lock_ttl_seconds()
        self.max_places = max_places or get_max_places()
        self.lock_name = lock_name

    # =========================================================================
    # RUN LIFECYCLE
    # =========================================================================

    def begin(self, triggered_by: str = "manual", max_places: Optional[int] = None) -> Result:
        """
        Take the lease and create the run record.

        Returns:
            ok((SyncRun, SyncLease)); CONFLICT when disabled or when another
            sync holds the lease
        """
        if not is_sync_enabled():
            return Result.err(
                ErrorKind.CONFLICT,
                "Candidate sync is disabled (CANDIDATE_SYNC_ENABLED=false)",
                disabled=True,
            )

        lease = SyncLease.acquire(self.session, self.lock_name, self.lock_ttl_seconds)
        if lease is None:
            return Result.err(ErrorKind.CONFLICT, "A candidate sync is already running")

        limit = max_places or self.max_places
        try:
            run = SyncRun(
                status=RUN_RUNNING,
                triggered_by=triggered_by,
                config_snapshot=self._config_snapshot(limit),
            )
            self.session.add(run)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            lease.release()
            logger.error(f"Could not create sync run: {e}")
            return Result.err(ErrorKind.PERSISTENCE_ERROR, "Could not create sync run")

        logger.info(f"Sync run {run.id} started by {triggered_by} (max_places={limit})")
        return Result.ok((run, lease))

    def execute(self, run_id: str, lease: SyncLease, source: PlaceSource) -> SyncRun:
        """
        Process every batch for an already-begun run.

        Always releases the lease, and the run never stays running: any error
        marks it failed with an error kind.
        """
        run = self.session.get(SyncRun, run_id)
        limit = (run.config_snapshot or {}).get("max_places", self.max_places)
        seen = 0

        try:
            for batch in source.fetch_batches():
                self.session.refresh(run)
                if run.cancel_requested:
                    run.cancel()
                    self.session.commit()
                    logger.info(f"Sync run {run_id} cancelled after {run.batches_completed} batches")
                    break

                lease.renew()

                batch = list(batch)[: limit - seen]
                seen += len(batch)

                stats = self._process_batch(run_id, batch)
                run.add_stats(stats)
                self.session.commit()
                logger.info(
                    f"Sync run {run_id} batch {run.batches_completed}: "
                    f"{stats['candidates_created']} created, "
                    f"{stats['skipped_existing']} existing, "
                    f"{stats['skipped_invalid']} invalid"
                )

                if seen >= limit:
                    logger.info(f"Sync run {run_id} reached max_places={limit}")
                    break

            self.session.refresh(run)
            if run.status == RUN_RUNNING:
                if run.cancel_requested:
                    run.cancel()
                else:
                    run.complete()
                self.session.commit()

        except (PlaceSourceError, RequestException, TimeoutError) as e:
            logger.error(f"Sync run {run_id} failed fetching places: {e}")
            self._fail(run_id, ErrorKind.UPSTREAM_FAILURE, str(e))
        except LeaseLostError as e:
            logger.error(f"Sync run {run_id} lost its lease: {e}")
            self._fail(run_id, ErrorKind.CONFLICT, str(e))
        except SQLAlchemyError as e:
            logger.error(f"Sync run {run_id} database error: {e}")
            self._fail(run_id, ErrorKind.PERSISTENCE_ERROR, str(e))
        except Exception as e:
            logger.exception(f"Sync run {run_id} crashed: {e}")
            self._fail(run_id, ErrorKind.PERSISTENCE_ERROR, f"Unexpected error: {e}")
        finally:
            lease.release()

        run = self.session.get(SyncRun, run_id)
        logger.info(
            f"Sync run {run_id} {run.status}: {run.records_seen} seen, "
            f"{run.candidates_created} created, {run.duplicates_flagged} duplicates"
        )
        return run

    def run(
        self,
        source: PlaceSource,
        triggered_by: str = "manual",
        max_places: Optional[int] = None,
    ) -> Result[SyncRun]:
        """begin() + execute() in the calling thread."""
        begun = self.begin(triggered_by=triggered_by, max_places=max_places)
        if begun.is_err:
            return begun
        run, lease = begun.value
        return Result.ok(self.execute(run.id, lease, source))

    def _fail(self, run_id: str, kind: ErrorKind, message: str):
        self.session.rollback()
        run = self.session.get(SyncRun, run_id)
        run.fail(kind.value, message[:2000])
        self.session.commit()

    def _config_snapshot(self, max_places: int) -> Dict[str, Any]:
        return {
            "matcher": self.matcher_settings.to_dict(),
            "scorer": self.scorer_settings.to_dict(),
            "scoring_version": SCORING_VERSION,
            "max_places": max_places,
            "lock_ttl_seconds": self.lock_ttl_seconds,
        }

    # =========================================================================
    # BATCH PROCESSING
    # =========================================================================

    def _normalize(self, item: Any) -> NormalizedPlace:
        raw = item if isinstance(item, RawPlace) else RawPlace.model_validate(item)
        return normalize_place(raw)

    def _process_batch(self, run_id: str, batch: List[Any]) -> Dict[str, int]:
        stats = {name: 0 for name in STAT_FIELDS}
        stats["batches_completed"] = 1
        stats["records_seen"] = len(batch)

        places = []
        for item in batch:
            try:
                places.append(self._normalize(item))
            except (PydanticValidationError, PlaceNormalizationError) as e:
                stats["skipped_invalid"] += 1
                logger.info(f"Skipping invalid place: {e}")

        existing = self.store.existing_refs(p.external_ref for p in places)
        new_candidates = []
        refs_in_batch = set()
        for place in places:
            if place.external_ref in existing or place.external_ref in refs_in_batch:
                stats["skipped_existing"] += 1
                continue
            refs_in_batch.add(place.external_ref)
            new_candidates.append(self.build_candidate(place, run_id))

        inserted, raced = self.store.insert_batch(new_candidates)
        stats["candidates_created"] = len(inserted)
        stats["skipped_existing"] += raced
        stats["duplicates_flagged"] = sum(1 for c in inserted if c.is_duplicate)
        return stats

    def scoring_fields(self, subject) -> Dict[str, Any]:
        """Score, duplicate and type-suggestion fields for a NormalizedPlace or ImportCandidate."""
        inventory = records_near(
            subject.latitude,
            subject.longitude,
            self.matcher_settings.radius_meters,
            session=self.session,
        )
        outcome = find_duplicates(subject, inventory, self.matcher_settings)
        breakdown = score_candidate(subject, self.scorer_settings)
        suggestion = suggest_for(subject)
        best = outcome.best
        return {
            "confidence_score": breakdown.score,
            "score_breakdown": breakdown.to_dict(),
            "scoring_version": breakdown.version,
            "is_duplicate": outcome.is_duplicate,
            "matched_campsite_id": outcome.matched_campsite_id,
            "match_similarity": best.similarity if best else None,
            "match_distance_meters": round(best.distance_meters, 2) if best else None,
            "validation_warnings": build_validation_warnings(subject, outcome.similar_count),
            "suggested_type": suggestion.type_name,
            "suggested_type_confidence": suggestion.confidence,
        }

    def build_candidate(self, place: NormalizedPlace, run_id: Optional[str] = None) -> ImportCandidate:
        return ImportCandidate(
            external_ref=place.external_ref,
            sync_run_id=run_id,
            name=place.name,
            address=place.address,
            latitude=place.latitude,
            longitude=place.longitude,
            phone=place.phone,
            website=place.website,
            place_types=list(place.place_types),
            rating=place.rating,
            rating_count=place.rating_count,
            price_level=place.price_level,
            status=STATUS_PENDING,
            **self.scoring_fields(place),
        )

    # =========================================================================
    # CANCELLATION / RUN QUERIES
    # =========================================================================

    def cancel_sync(self, run_id: str) -> Result[SyncRun]:
        """Ask a running sync to stop before its next batch."""
        run = self.session.get(SyncRun, run_id)
        if run is None:
            return Result.err(ErrorKind.NOT_FOUND, f"Sync run {run_id} not found", run_id=run_id)
        if run.is_finished:
            return Result.err(
                ErrorKind.CONFLICT,
                f"Sync run {run_id} is already {run.status}",
                run_id=run_id,
                current_status=run.status,
            )
        try:
            run.cancel_requested = True
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Could not cancel sync run {run_id}: {e}")
            return Result.err(ErrorKind.PERSISTENCE_ERROR, "Could not record cancel request", run_id=run_id)
        logger.info(f"Cancel requested for sync run {run_id}")
        return Result.ok(run)

    def get_run(self, run_id: str) -> Result[SyncRun]:
        run = self.session.get(SyncRun, run_id)
        if run is None:
            return Result.err(ErrorKind.NOT_FOUND, f"Sync run {run_id} not found", run_id=run_id)
        return Result.ok(run)

    def list_runs(self, limit: int = 20, offset: int = 0):
        query = self.session.query(SyncRun)
        total = query.count()
        runs = (
            query.order_by(SyncRun.started_at.desc(), SyncRun.id)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return total, runs

    # =========================================================================
    # RESCORING JOB
    # =========================================================================

    def rescore_pending(self) -> Result[Dict[str, int]]:
        """
        Recompute scoring and duplicate fields for every pending candidate.

        Running it twice without inventory changes yields the same values.
        Candidates reviewed in the meantime are left alone.
        """
        stats = {"rescored": 0, "skipped": 0, "duplicates": 0}
        try:
            ids = self.store.pending_ids()
            for index, candidate_id in enumerate(ids, start=1):
                candidate = self.session.get(ImportCandidate, candidate_id)
                if candidate is None or candidate.status != STATUS_PENDING:
                    stats["skipped"] += 1
                    continue
                fields = self.scoring_fields(candidate)
                if self.store.update_scoring(candidate_id, fields):
                    stats["rescored"] += 1
                    stats["duplicates"] += int(fields["is_duplicate"])
                else:
                    stats["skipped"] += 1
                if index % self.RESCORE_COMMIT_EVERY == 0:
                    self.session.commit()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Rescoring failed: {e}")
            return Result.err(ErrorKind.PERSISTENCE_ERROR, "Rescoring failed", **stats)

        logger.info(
            f"Rescored {stats['rescored']} pending candidates "
            f"({stats['duplicates']} duplicates, {stats['skipped']} skipped)"
        )
        return Result.ok(stats)


# =============================================================================
# BACKGROUND EXECUTION
# =============================================================================

def start_background_sync(
    app,
    source: PlaceSource,
    triggered_by: str = "manual",
    max_places: Optional[int] = None,
    service_factory=None,
) -> Result[SyncRun]:
    """
    Begin a run in the caller's context and process it on a daemon thread.

    The lease is taken before returning, so a concurrent trigger gets its
    CONFLICT synchronously.
    """
    factory = service_factory or CandidateSyncService
    begun = factory().begin(triggered_by=triggered_by, max_places=max_places)
    if begun.is_err:
        return begun
    run, lease = begun.value
    run_id, token, ttl = run.id, lease.token, lease.ttl_seconds

    def _do_sync(flask_app):
        with flask_app.app_context():
            service = factory()
            thread_lease = SyncLease(service.session, lease.name, token, ttl)
            try:
                service.execute(run_id, thread_lease, source)
            except Exception:
                logger.exception(f"Background sync run {run_id} crashed")
            finally:
                db.session.remove()

    thread = threading.Thread(target=_do_sync, args=(app,), daemon=True, name=f"candidate-sync-{run_id[:8]}")
    thread.start()
    return Result.ok(run)
