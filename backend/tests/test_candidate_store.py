"""
Tests for CandidateStore: listing, batch inserts and compare-and-set
status transitions.
"""

import pytest

from models.candidate_import import CandidateImport
from models.import_candidate import ImportCandidate
from services.candidate_store import CandidateStore
from services.result import ErrorKind


@pytest.fixture
def store(session):
    return CandidateStore(session)


class TestReads:

    def test_get_missing(self, store):
        result = store.get("does-not-exist")

        assert result.is_err
        assert result.error.kind is ErrorKind.NOT_FOUND

    def test_list_orders_by_confidence(self, store, make_candidate):
        low = make_candidate(confidence_score=0.2)
        high = make_candidate(confidence_score=0.9)
        mid = make_candidate(confidence_score=0.5)

        total, rows = store.list_candidates().unwrap()

        assert total == 3
        assert [c.id for c in rows] == [high.id, mid.id, low.id]

    def test_list_filters(self, store, make_candidate, make_campsite):
        campsite = make_campsite()
        make_candidate(confidence_score=0.9)
        dup = make_candidate(confidence_score=0.7, is_duplicate=True, matched_campsite_id=campsite.id)
        make_candidate(confidence_score=0.3, status="rejected")

        total, rows = store.list_candidates(is_duplicate=True).unwrap()
        assert total == 1 and rows[0].id == dup.id

        total, _ = store.list_candidates(status="pending").unwrap()
        assert total == 2

        total, _ = store.list_candidates(min_confidence=0.7).unwrap()
        assert total == 2

    def test_list_pagination_keeps_total(self, store, make_candidate):
        for score in (0.9, 0.8, 0.7):
            make_candidate(confidence_score=score)

        total, rows = store.list_candidates(limit=1, offset=1).unwrap()

        assert total == 3
        assert [c.confidence_score for c in rows] == [0.8]

    def test_existing_refs(self, store, make_candidate):
        make_candidate(external_ref="known")

        assert store.existing_refs(["known", "new"]) == {"known"}
        assert store.existing_refs([]) == set()

    def test_pending_ids(self, store, make_candidate):
        pending = make_candidate()
        make_candidate(status="rejected", rejection_reason="nope")

        assert store.pending_ids() == [pending.id]


class TestInsertBatch:

    def _candidate(self, ref):
        return ImportCandidate(
            external_ref=ref,
            name=f"Camp {ref}",
            latitude=18.8,
            longitude=98.9,
            scoring_version="v1",
        )

    def test_inserts_all(self, store, session):
        inserted, skipped = store.insert_batch([self._candidate("a"), self._candidate("b")])

        assert len(inserted) == 2
        assert skipped == 0
        assert session.query(ImportCandidate).count() == 2

    def test_conflicting_ref_falls_back_to_row_by_row(self, store, session, make_candidate):
        make_candidate(external_ref="taken")

        inserted, skipped = store.insert_batch([
            self._candidate("fresh-1"),
            self._candidate("taken"),
            self._candidate("fresh-2"),
        ])

        assert [c.external_ref for c in inserted] == ["fresh-1", "fresh-2"]
        assert skipped == 1
        assert session.query(ImportCandidate).count() == 3

    def test_empty_batch(self, store):
        assert store.insert_batch([]) == ([], 0)


class TestTransition:

    def test_pending_to_rejected(self, store, make_candidate):
        candidate = make_candidate()

        result = store.transition(
            candidate.id, "pending", "rejected",
            rejection_reason="Not a campsite", reviewed_by="admin-1",
        )

        assert result.is_ok
        assert result.value.status == "rejected"
        assert result.value.rejection_reason == "Not a campsite"
        assert result.value.reviewed_by == "admin-1"

    def test_stale_expected_status_conflicts(self, store, make_candidate):
        candidate = make_candidate(status="rejected", rejection_reason="dup")

        result = store.transition(candidate.id, "pending", "approved")

        assert result.error.kind is ErrorKind.CONFLICT
        assert result.error.context["current_status"] == "rejected"

    def test_second_writer_loses(self, store, make_candidate):
        """Two reviewers acting on the same pending candidate: only one wins."""
        candidate = make_candidate()

        first = store.transition(candidate.id, "pending", "approved", reviewed_by="a")
        second = store.transition(candidate.id, "pending", "rejected", rejection_reason="x")

        assert first.is_ok
        assert second.error.kind is ErrorKind.CONFLICT
        assert store.get(candidate.id).value.status == "approved"

    def test_missing_candidate(self, store):
        result = store.transition("missing", "pending", "approved")
        assert result.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.parametrize("expected,target", [
        ("rejected", "pending"),
        ("imported", "approved"),
        ("pending", "imported"),
        ("approved", "rejected"),
    ])
    def test_disallowed_edges(self, store, make_candidate, expected, target):
        candidate = make_candidate(status=expected)

        result = store.transition(candidate.id, expected, target)

        assert result.error.kind is ErrorKind.CONFLICT
        assert store.get(candidate.id).value.status == expected


class TestCompleteImport:

    def test_links_and_moves_to_imported(self, store, session, make_candidate):
        candidate = make_candidate(status="approved")

        result = store.complete_import(candidate.id, "campsite-1", actor="admin-1")

        assert result.is_ok
        assert result.value.status == "imported"
        assert result.value.imported_campsite_id == "campsite-1"
        link = session.query(CandidateImport).filter_by(candidate_id=candidate.id).one()
        assert link.imported_by == "admin-1"

    def test_second_import_conflicts(self, store, session, make_candidate):
        candidate = make_candidate(status="approved")
        store.complete_import(candidate.id, "campsite-1")

        result = store.complete_import(candidate.id, "campsite-2")

        assert result.error.kind is ErrorKind.CONFLICT
        assert session.query(CandidateImport).filter_by(candidate_id=candidate.id).count() == 1

    def test_pending_candidate_cannot_be_imported(self, store, session, make_candidate):
        candidate = make_candidate()

        result = store.complete_import(candidate.id, "campsite-1")

        assert result.error.kind is ErrorKind.CONFLICT
        assert session.query(CandidateImport).count() == 0


class TestUpdateScoring:

    def test_updates_pending_only(self, store, session, make_candidate):
        pending = make_candidate(confidence_score=0.1)
        approved = make_candidate(status="approved", confidence_score=0.1)

        assert store.update_scoring(pending.id, {"confidence_score": 0.6}) is True
        assert store.update_scoring(approved.id, {"confidence_score": 0.6}) is False
        session.commit()

        assert store.get(pending.id).value.confidence_score == 0.6
        assert store.get(approved.id).value.confidence_score == 0.1
        assert store.get(pending.id).value.rescored_at is not None
