"""
Candidate Store - Persistence and conditional status updates for candidates.

Every status change goes through transition(), a compare-and-set:

    UPDATE import_candidates SET status = :target, ...
    WHERE id = :id AND status = :expected

rowcount == 1 means this caller won; 0 means the row is missing or someone
else moved it first. SQLAlchemy failures are rolled back and reported as
PERSISTENCE_ERROR results.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.candidate_import import CandidateImport
from models.database import db, utcnow
from models.import_candidate import (
    STATUS_APPROVED,
    STATUS_IMPORTED,
    STATUS_PENDING,
    ImportCandidate,
    is_allowed_transition,
)
from services.result import ErrorKind, Result

logger = logging.getLogger(__name__)


class CandidateStore:
    """
    Data access for import candidates.

    Usage:
        store = CandidateStore(db.session)
        result = store.transition(candidate_id, 'pending', 'rejected',
                                  rejection_reason='Not a campsite')
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, candidate_id: str) -> Result[ImportCandidate]:
        try:
            candidate = self.session.get(ImportCandidate, candidate_id)
        except SQLAlchemyError as e:
            return self._persistence_error("get", e, candidate_id=candidate_id)
        if candidate is None:
            return Result.err(
                ErrorKind.NOT_FOUND,
                f"Candidate {candidate_id} not found",
                candidate_id=candidate_id,
            )
        return Result.ok(candidate)

    def list_candidates(
        self,
        status: Optional[str] = None,
        is_duplicate: Optional[bool] = None,
        min_confidence: Optional[float] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Result[Tuple[int, List[ImportCandidate]]]:
        """Filtered page ordered by confidence desc, newest first, then id."""
        try:
            query = self.session.query(ImportCandidate)
            if status:
                query = query.filter(ImportCandidate.status == status)
            if is_duplicate is not None:
                query = query.filter(ImportCandidate.is_duplicate.is_(is_duplicate))
            if min_confidence is not None:
                query = query.filter(ImportCandidate.confidence_score >= min_confidence)

            total = query.with_entities(func.count(ImportCandidate.id)).scalar() or 0
            rows = (
                query.order_by(
                    ImportCandidate.confidence_score.desc(),
                    ImportCandidate.created_at.desc(),
                    ImportCandidate.id.asc(),
                )
                .limit(limit)
                .offset(offset)
                .all()
            )
        except SQLAlchemyError as e:
            return self._persistence_error("list", e)
        return Result.ok((total, rows))

    def pending_ids(self) -> List[str]:
        rows = (
            self.session.query(ImportCandidate.id)
            .filter(ImportCandidate.status == STATUS_PENDING)
            .order_by(ImportCandidate.id)
            .all()
        )
        return [row[0] for row in rows]

    def existing_refs(self, refs: Iterable[str]) -> Set[str]:
        """Subset of external refs that already have a candidate row."""
        refs = list(set(refs))
        if not refs:
            return set()
        rows = (
            self.session.query(ImportCandidate.external_ref)
            .filter(ImportCandidate.external_ref.in_(refs))
            .all()
        )
        return {row[0] for row in rows}

    # =========================================================================
    # WRITES
    # =========================================================================

    def insert_batch(self, candidates: List[ImportCandidate]) -> Tuple[List[ImportCandidate], int]:
        """
        Insert new candidates and commit.

        A unique violation on external_ref (another writer got there first)
        falls back to row-by-row inserts so the rest of the batch survives.

        Returns:
            (inserted candidates, skipped_existing count)
        """
        if not candidates:
            return [], 0
        try:
            self.session.add_all(candidates)
            self.session.commit()
            return list(candidates), 0
        except IntegrityError:
            self.session.rollback()
            logger.info("external_ref conflict in batch, retrying row by row")

        inserted = []
        skipped = 0
        for candidate in candidates:
            try:
                self.session.add(candidate)
                self.session.commit()
                inserted.append(candidate)
            except IntegrityError:
                self.session.rollback()
                skipped += 1
                logger.info(f"Skipped existing external_ref={candidate.external_ref}")
        return inserted, skipped

    def transition(
        self,
        candidate_id: str,
        expected: str,
        target: str,
        **values: Any,
    ) -> Result[ImportCandidate]:
        """
        Move a candidate from expected to target status if nobody else has.

        Returns:
            ok(candidate) on success; CONFLICT if the stored status is not
            `expected`; NOT_FOUND if the row does not exist.
        """
        if not is_allowed_transition(expected, target):
            return Result.err(
                ErrorKind.CONFLICT,
                f"Transition {expected} -> {target} is not allowed",
                candidate_id=candidate_id,
            )
        try:
            rowcount = self._compare_and_set(candidate_id, expected, target, values)
            if rowcount != 1:
                self.session.rollback()
                return self._lost_race(candidate_id, expected, target)
            self.session.commit()
        except SQLAlchemyError as e:
            return self._persistence_error("transition", e, candidate_id=candidate_id)

        logger.info(f"Candidate {candidate_id}: {expected} -> {target}")
        return self.get(candidate_id)

    def complete_import(
        self,
        candidate_id: str,
        campsite_id: str,
        actor: Optional[str] = None,
    ) -> Result[ImportCandidate]:
        """
        Record the import link and move approved -> imported in one transaction.

        The unique candidate_id on candidate_imports makes a second import of
        the same candidate fail here, never reach a second campsite link.
        """
        try:
            self.session.add(CandidateImport(
                candidate_id=candidate_id,
                campsite_id=campsite_id,
                imported_by=actor,
            ))
            self.session.flush()
            rowcount = self._compare_and_set(candidate_id, STATUS_APPROVED, STATUS_IMPORTED, {})
            if rowcount != 1:
                self.session.rollback()
                return self._lost_race(candidate_id, STATUS_APPROVED, STATUS_IMPORTED)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.warning(f"Candidate {candidate_id} already has an import record")
            return Result.err(
                ErrorKind.CONFLICT,
                f"Candidate {candidate_id} has already been imported",
                candidate_id=candidate_id,
            )
        except SQLAlchemyError as e:
            return self._persistence_error("complete_import", e, candidate_id=candidate_id)

        logger.info(f"Candidate {candidate_id} imported as campsite {campsite_id}")
        return self.get(candidate_id)

    def update_scoring(self, candidate_id: str, values: Dict[str, Any]) -> bool:
        """
        Overwrite scoring fields while the candidate is still pending.

        Returns False when the candidate left pending in the meantime.
        Caller commits.
        """
        stmt = (
            update(ImportCandidate)
            .where(ImportCandidate.id == candidate_id)
            .where(ImportCandidate.status == STATUS_PENDING)
            .values(**values, rescored_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _compare_and_set(self, candidate_id: str, expected: str, target: str, values: Dict[str, Any]) -> int:
        stmt = (
            update(ImportCandidate)
            .where(ImportCandidate.id == candidate_id)
            .where(ImportCandidate.status == expected)
            .values(status=target, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def _lost_race(self, candidate_id: str, expected: str, target: str) -> Result:
        current = self.session.query(ImportCandidate.status).filter(
            ImportCandidate.id == candidate_id
        ).scalar()
        if current is None:
            return Result.err(
                ErrorKind.NOT_FOUND,
                f"Candidate {candidate_id} not found",
                candidate_id=candidate_id,
            )
        logger.info(
            f"Candidate {candidate_id}: {expected} -> {target} refused, status is {current}"
        )
        return Result.err(
            ErrorKind.CONFLICT,
            f"Candidate is {current}, expected {expected}",
            candidate_id=candidate_id,
            current_status=current,
        )

    def _persistence_error(self, operation: str, error: Exception, **context) -> Result:
        self.session.rollback()
        logger.error(f"Candidate store {operation} failed: {error}")
        return Result.err(ErrorKind.PERSISTENCE_ERROR, f"Database error during {operation}", **context)
