"""
Tests for supervision/services/observation_service.py.

Covers: forward-only status changes with rollback on remote failure,
feedback gating and the one-feedback-per-observation ledger, listings.
"""
import httpx
import pytest

from shared.models.domain import ScheduleStatus
from shared.repositories.feedback_repository import FeedbackRepository
from shared.repositories.mirror_repository import MirrorRepository
from shared.utils.exceptions import (
    DuplicateFeedbackException,
    FeedbackNotAllowedException,
    InvalidTransitionException,
    ScheduleNotFoundException,
    ValidationFailedException,
)
from supervision.services.observation_service import ObservationService
from tests.helpers.tpma_fakes import (
    body_of,
    feedback_payload,
    lesson_plan_payload,
    profile_payload,
    schedule_payload,
)
from tpma.exceptions import TPMAConnectionError, TPMAServiceError

PROFILE_PATH = "/api/getsupervisors/sup-1"
STATUS_PATH = "/api/supervisors/sup-1/observations/sch-1/status"
FEEDBACK_PATH = "/api/supervisors/sup-1/observations/sch-1/feedback"


@pytest.fixture
def service(db_session, tpma_client, gate):
    return ObservationService(db_session, tpma_client, gate=gate)


@pytest.fixture
def mirror(db_session):
    return MirrorRepository(db_session)


def _undecodable(request):
    raise httpx.DecodingError("incorrect header check", request=request)


def _profile_with(status):
    return profile_payload(
        lesson_plans=[lesson_plan_payload(status="APPROVED")],
        schedules=[schedule_payload(status=status)],
    )


class TestAdvanceStatus:

    def test_scheduled_to_ongoing(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("SCHEDULED"))
        fake_tpma.add("PUT", STATUS_PATH, {"schedule": schedule_payload(status="ONGOING")})

        response = service.advance_status("sup-1", "sch-1", "ONGOING")

        assert response.schedule.status == ScheduleStatus.ONGOING
        assert response.previous_status == "SCHEDULED"
        assert response.message == "Observation marked as ongoing"
        assert response.schedule.lesson_plan_title == "Fractions"
        assert body_of(fake_tpma.calls("PUT", STATUS_PATH)[0]) == {"status": "ONGOING"}

    def test_skipping_ahead_rejected_without_remote_call(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("SCHEDULED"))

        with pytest.raises(InvalidTransitionException):
            service.advance_status("sup-1", "sch-1", "COMPLETED")

        assert fake_tpma.calls("PUT", STATUS_PATH) == []

    def test_completed_is_terminal(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("COMPLETED"))
        with pytest.raises(InvalidTransitionException):
            service.advance_status("sup-1", "sch-1", "ONGOING")

    def test_remote_failure_restores_previous_status(self, service, fake_tpma, mirror):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("ONGOING"))
        fake_tpma.add("PUT", STATUS_PATH, {"error": "boom"}, status=500)

        with pytest.raises(TPMAServiceError):
            service.advance_status("sup-1", "sch-1", "COMPLETED")

        assert mirror.get_schedule("sup-1", "sch-1").status == ScheduleStatus.ONGOING

    def test_undecodable_response_restores_previous_status(self, service, fake_tpma, mirror):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("SCHEDULED"))
        fake_tpma.add_handler("PUT", STATUS_PATH, _undecodable)

        with pytest.raises(TPMAConnectionError):
            service.advance_status("sup-1", "sch-1", "ONGOING")

        assert mirror.get_schedule("sup-1", "sch-1").status == ScheduleStatus.SCHEDULED

    def test_unexpected_error_restores_previous_status(self, service, fake_tpma, mirror, mocker):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("SCHEDULED"))
        mocker.patch.object(
            service.client, "update_observation_status", side_effect=RuntimeError("boom")
        )

        with pytest.raises(RuntimeError):
            service.advance_status("sup-1", "sch-1", "ONGOING")

        assert mirror.get_schedule("sup-1", "sch-1").status == ScheduleStatus.SCHEDULED

    def test_mirror_updated_before_remote_call(self, service, fake_tpma, mirror):
        seen = []

        def remote(request):
            seen.append(mirror.get_schedule("sup-1", "sch-1").status)
            return httpx.Response(200, json={"schedule": schedule_payload(status="ONGOING")})

        fake_tpma.add("GET", PROFILE_PATH, _profile_with("SCHEDULED"))
        fake_tpma.add_handler("PUT", STATUS_PATH, remote)

        service.advance_status("sup-1", "sch-1", "ONGOING")

        assert seen == [ScheduleStatus.ONGOING]

    def test_unknown_schedule(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, profile_payload())
        with pytest.raises(ScheduleNotFoundException):
            service.advance_status("sup-1", "sch-1", "ONGOING")


class TestSubmitFeedback:

    def test_submits_for_completed_observation(self, service, fake_tpma, db_session):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("COMPLETED"))
        fake_tpma.add("POST", FEEDBACK_PATH, {"feedback": feedback_payload()})

        response = service.submit_feedback("sup-1", "sch-1", 8, "Clear explanations")

        assert response.message == "Feedback submitted successfully"
        assert response.feedback.id == "fb-1"
        assert body_of(fake_tpma.calls("POST", FEEDBACK_PATH)[0]) == {
            "traineeId": "t1",
            "supervisorId": "sup-1",
            "lesson_plan_id": "lp-1",
            "schedule_id": "sch-1",
            "comments": "Clear explanations",
            "score": 8,
        }
        record = FeedbackRepository(db_session).get_by_schedule("sch-1")
        assert record.status == "submitted"
        assert record.remote_feedback_id == "fb-1"

    def test_second_submission_rejected_locally(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("COMPLETED"))
        fake_tpma.add("POST", FEEDBACK_PATH, {"message": "Feedback submitted"})
        service.submit_feedback("sup-1", "sch-1", 8, "Clear explanations")

        with pytest.raises(DuplicateFeedbackException):
            service.submit_feedback("sup-1", "sch-1", 9, "Again")

        assert len(fake_tpma.calls("POST", FEEDBACK_PATH)) == 1

    @pytest.mark.parametrize("status", ["SCHEDULED", "ONGOING"])
    def test_only_completed_observations(self, service, fake_tpma, status):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with(status))

        with pytest.raises(FeedbackNotAllowedException):
            service.submit_feedback("sup-1", "sch-1", 8, "Good")

        assert fake_tpma.calls("POST", FEEDBACK_PATH) == []

    def test_invalid_score_rejected_before_remote(self, service, fake_tpma):
        with pytest.raises(ValidationFailedException):
            service.submit_feedback("sup-1", "sch-1", 11, "Good")
        assert fake_tpma.requests == []

    def test_remote_failure_releases_slot(self, service, fake_tpma, db_session):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("COMPLETED"))
        fake_tpma.add("POST", FEEDBACK_PATH, {"error": "boom"}, status=500)
        fake_tpma.add("POST", FEEDBACK_PATH, {"message": "Feedback submitted"})

        with pytest.raises(TPMAServiceError):
            service.submit_feedback("sup-1", "sch-1", 8, "Good")
        assert FeedbackRepository(db_session).get_by_schedule("sch-1") is None

        response = service.submit_feedback("sup-1", "sch-1", 8, "Good")
        assert response.feedback is None

    def test_undecodable_response_releases_slot(self, service, fake_tpma, db_session):
        fake_tpma.add("GET", PROFILE_PATH, _profile_with("COMPLETED"))
        fake_tpma.add_handler("POST", FEEDBACK_PATH, _undecodable)
        fake_tpma.add("POST", FEEDBACK_PATH, {"feedback": feedback_payload()})

        with pytest.raises(TPMAConnectionError):
            service.submit_feedback("sup-1", "sch-1", 8, "Good")
        assert FeedbackRepository(db_session).get_by_schedule("sch-1") is None

        response = service.submit_feedback("sup-1", "sch-1", 8, "Good")
        assert response.feedback.id == "fb-1"


class TestListings:

    def test_list_schedules_loads_mirror_once(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, profile_payload(schedules=[
            schedule_payload(id="a", status="COMPLETED"),
            schedule_payload(id="b"),
        ]))

        page = service.list_schedules("sup-1", status="completed")
        service.list_schedules("sup-1")

        assert [s.id for s in page.items] == ["a"]
        assert page.total_count == 1
        assert len(fake_tpma.calls("GET", PROFILE_PATH)) == 1

    def test_list_schedules_rejects_unknown_status(self, service):
        with pytest.raises(ValidationFailedException):
            service.list_schedules("sup-1", status="CANCELLED")

    def test_list_schedules_paginates(self, service, fake_tpma):
        fake_tpma.add("GET", PROFILE_PATH, profile_payload(schedules=[
            schedule_payload(id=f"s{i:02d}", start_time=f"{8 + i:02d}:00") for i in range(12)
        ]))

        page = service.list_schedules("sup-1", page=2)

        assert page.total_pages == 2
        assert [s.id for s in page.items] == ["s10", "s11"]

    def test_list_feedback_delegates(self, service, fake_tpma):
        fake_tpma.add("GET", "/api/feedback", {"feedback": [feedback_payload()], "totalCount": 1, "totalPages": 1})

        page = service.list_feedback("sup-1", search="Ada")

        assert page.items[0].id == "fb-1"
        params = dict(fake_tpma.requests[0].url.params)
        assert params["search"] == "Ada"
        assert params["limit"] == str(service.settings.feedback_page_size)
