"""Tests for the assessment record store."""

import re
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from pragma_score import store
from pragma_score.db import SessionLocal
from pragma_score.lifecycle import InvalidTransition
from pragma_score.models import AssessmentRecord
from pragma_score.store import AssessmentNotFound, ConcurrentUpdate, IntakeError, PersistenceError

SHORT_CODE_RE = re.compile(r"^PS-[ABCDEFGHJKLMNPQRSTUVWXYZ23456789]{6}$")


def _create(db, **overrides):
    fields = {"name": "Dana Owner", "email": "dana@example.com", "company": "Acme Plumbing"}
    fields.update(overrides)
    return store.create_assessment(db, **fields)


class TestIntake:
    def test_create_assessment(self, db):
        row = _create(db, phone=" 555-0100 ")
        assert row.status == "not_started"
        assert row.current_step == 0
        assert row.responses == {}
        assert row.scores is None
        assert row.manual_insights == []
        assert row.phone == "555-0100"
        assert row.payment_status == "pending"
        assert SHORT_CODE_RE.match(row.short_code)

    def test_demo_assessment_skips_payment(self, db):
        assert _create(db, is_demo=True).payment_status == "paid"

    @pytest.mark.parametrize("missing", ["name", "email", "company"])
    def test_missing_fields_persist_nothing(self, db, missing):
        with pytest.raises(IntakeError):
            _create(db, **{missing: "  "})
        assert db.query(AssessmentRecord).count() == 0

    def test_invalid_email(self, db):
        with pytest.raises(IntakeError):
            _create(db, email="not-an-email")

    def test_short_code_format(self):
        for _ in range(50):
            assert SHORT_CODE_RE.match(store.generate_short_code())


class TestLookup:
    def test_resolve_short_code_case_insensitive(self, db):
        row = _create(db)
        assert store.resolve_code(db, row.short_code.lower()).token == row.token

    def test_resolve_falls_back_to_token(self, db):
        row = _create(db)
        assert store.resolve_code(db, row.token).token == row.token

    def test_resolve_unknown(self, db):
        with pytest.raises(AssessmentNotFound):
            store.resolve_code(db, "PS-ZZZZZZ")

    def test_get_unknown_token(self, db):
        with pytest.raises(AssessmentNotFound):
            store.get_assessment(db, uuid.uuid4().hex)

    def test_list_filters(self, db):
        _create(db, is_demo=True)
        _create(db, email="other@example.com")
        assert len(store.list_assessments(db)) == 2
        assert len(store.list_assessments(db, is_demo=True)) == 1
        assert len(store.list_assessments(db, email="other@example.com")) == 1
        assert len(store.list_assessments(db, status="released")) == 0


class TestProgress:
    def test_first_save_moves_to_in_progress(self, db):
        row = _create(db)
        row = store.save_progress(db, row.token, responses={"control-2": 4}, current_step=1)
        assert row.status == "in_progress"
        assert row.current_step == 1
        assert row.responses == {"control-2": 4}

    def test_saves_merge_and_none_clears(self, db):
        row = _create(db)
        store.save_progress(db, row.token, responses={"control-2": 4, "control-4": 2})
        row = store.save_progress(db, row.token, responses={"control-2": None, "clarity-1": "I'd need to check"})
        assert row.responses == {"control-4": 2, "clarity-1": "I'd need to check"}

    def test_negative_step_rejected(self, db):
        row = _create(db)
        with pytest.raises(ValueError):
            store.save_progress(db, row.token, current_step=-1)


class TestSubmit:
    def test_submit_scores_and_freezes(self, db, baseline_responses):
        row = _create(db)
        store.save_progress(db, row.token, responses=baseline_responses)
        row = store.submit_assessment(db, row.token)
        assert row.status == "pending_review"
        assert row.scores["totalScore"] == 60
        assert row.scores["band"] == "stable"
        assert row.submitted_at is not None
        with pytest.raises(InvalidTransition):
            store.save_progress(db, row.token, responses={"control-2": 1})

    def test_submit_with_final_responses_from_not_started(self, db, baseline_responses):
        row = _create(db)
        row = store.submit_assessment(db, row.token, responses=baseline_responses)
        assert row.status == "pending_review"
        assert row.responses == baseline_responses

    def test_submit_without_any_answers_is_rejected(self, db):
        row = _create(db)
        with pytest.raises(InvalidTransition):
            store.submit_assessment(db, row.token)

    def test_submit_twice_is_rejected(self, db, baseline_responses):
        row = _create(db)
        store.submit_assessment(db, row.token, responses=baseline_responses)
        with pytest.raises(InvalidTransition):
            store.submit_assessment(db, row.token)

    def test_failed_commit_leaves_no_partial_update(self, db, baseline_responses):
        row = _create(db)
        store.save_progress(db, row.token, responses=baseline_responses)
        token = row.token
        with patch.object(db, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(PersistenceError):
                store.submit_assessment(db, token)

        fresh = SessionLocal()
        try:
            stored = store.get_assessment(fresh, token)
            assert stored.status == "in_progress"
            assert stored.scores is None
            assert stored.submitted_at is None
        finally:
            fresh.close()


class TestConcurrentWriters:
    def test_save_after_submit_in_another_session_is_rejected(self, db, baseline_responses):
        row = _create(db)
        store.save_progress(db, row.token, responses=baseline_responses)
        # this session now holds an in_progress copy of the row
        assert row.status == "in_progress"

        other = SessionLocal()
        try:
            store.submit_assessment(other, row.token)
        finally:
            other.close()

        with pytest.raises(InvalidTransition):
            store.save_progress(db, row.token, responses={"control-2": 5})

        stored = store.lock_assessment(db, row.token)
        assert stored.status == "pending_review"
        assert stored.responses["control-2"] == 3
        assert stored.scores["dimensions"][0]["percentage"] == 60

    def test_write_from_outdated_copy_conflicts(self, db):
        row = _create(db)
        assert row.current_step == 0

        other = SessionLocal()
        try:
            store.save_progress(other, row.token, current_step=3)
        finally:
            other.close()

        row.current_step = 1
        with pytest.raises(ConcurrentUpdate):
            store._commit(db, "save assessment progress")
        assert store.get_assessment(db, row.token).current_step == 3

    def test_stale_commit_maps_to_conflict(self, db):
        row = _create(db)
        with patch.object(db, "commit", side_effect=StaleDataError("version mismatch")):
            with pytest.raises(ConcurrentUpdate):
                store.save_progress(db, row.token, current_step=1)


class TestReview:
    def _submitted(self, db, responses):
        row = _create(db)
        return store.submit_assessment(db, row.token, responses=responses)

    def test_review_edits_keep_status(self, db, baseline_responses):
        row = self._submitted(db, baseline_responses)
        insight = {"title": "Owner bottleneck", "priority": "high", "category": "people"}
        row = store.update_review(db, row.token, manual_insights=[insight], executive_override="Read this first")
        assert row.status == "pending_review"
        assert row.manual_insights == [insight]
        assert row.executive_override == "Read this first"
        row = store.update_review(db, row.token, clear_override=True)
        assert row.executive_override is None

    def test_review_edits_blocked_before_submission(self, db):
        row = _create(db)
        with pytest.raises(InvalidTransition):
            store.update_review(db, row.token, executive_override="too early")

    def test_release_requires_narrative_by_default(self, db, baseline_responses):
        row = self._submitted(db, baseline_responses)
        with pytest.raises(InvalidTransition):
            store.release_assessment(db, row.token)

    def test_release(self, db, baseline_responses):
        row = self._submitted(db, baseline_responses)
        store.store_narrative(db, row.token, {"executive_summary": "ok"})
        row = store.release_assessment(db, row.token)
        assert row.status == "released"
        assert row.released_at is not None
        assert row.responses == baseline_responses
        with pytest.raises(InvalidTransition):
            store.release_assessment(db, row.token)

    def test_release_without_scores_fails(self, db):
        row = _create(db)
        # Legacy row that reached review without a stored scorecard
        row.status = "pending_review"
        db.commit()
        with pytest.raises(InvalidTransition):
            store.release_assessment(db, row.token, require_narrative=False)
        assert store.get_assessment(db, row.token).status == "pending_review"
