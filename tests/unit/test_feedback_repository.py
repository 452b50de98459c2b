"""Tests for shared/repositories/feedback_repository.py."""
import pytest

from shared.models.entities import ObservationFeedbackRecord
from shared.repositories.feedback_repository import RESERVED, SUBMITTED, FeedbackRepository
from shared.utils.exceptions import DuplicateFeedbackException


@pytest.fixture
def ledger(db_session):
    return FeedbackRepository(db_session)


def _reserve(ledger, schedule_id="sch-1"):
    return ledger.reserve(
        schedule_id=schedule_id,
        supervisor_id="sup-1",
        trainee_id="t1",
        score=8,
        comments="Clear explanations",
        lesson_plan_id="lp-1",
    )


class TestReserve:

    def test_reserve_creates_reserved_row(self, ledger):
        record_id = _reserve(ledger)

        record = ledger.get_by_schedule("sch-1")
        assert record.id == record_id
        assert record.status == RESERVED
        assert record.submitted_at is None

    def test_second_reservation_rejected(self, ledger):
        _reserve(ledger)
        with pytest.raises(DuplicateFeedbackException) as exc_info:
            _reserve(ledger)
        assert exc_info.value.status_code == 409

    def test_unique_constraint_backs_the_check(self, ledger, db_session, mocker):
        _reserve(ledger)
        mocker.patch.object(ledger, "get_by_schedule", return_value=None)

        with pytest.raises(DuplicateFeedbackException):
            _reserve(ledger)

        assert db_session.query(ObservationFeedbackRecord).count() == 1


class TestLifecycle:

    def test_confirm_marks_submitted(self, ledger):
        record_id = _reserve(ledger)

        ledger.confirm(record_id, "fb-1")

        record = ledger.get_by_schedule("sch-1")
        assert record.status == SUBMITTED
        assert record.remote_feedback_id == "fb-1"
        assert record.submitted_at is not None
        assert ledger.count_by_supervisor("sup-1") == 1

    def test_release_frees_slot(self, ledger):
        record_id = _reserve(ledger)

        ledger.release(record_id)

        assert ledger.get_by_schedule("sch-1") is None
        _reserve(ledger)

    def test_release_keeps_submitted_row(self, ledger):
        record_id = _reserve(ledger)
        ledger.confirm(record_id)

        ledger.release(record_id)

        assert ledger.get_by_schedule("sch-1") is not None

    def test_confirm_unknown_record_is_noop(self, ledger):
        ledger.confirm("missing")
        assert ledger.count_by_supervisor("sup-1") == 0
