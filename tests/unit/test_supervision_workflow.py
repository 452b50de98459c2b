"""
End-to-end supervisor workflow against a stateful fake TPMA API.

lp-1 (PENDING, trainee t1) is approved with an observation on 2025-04-07
09:00-10:00, observed, completed and given feedback exactly once.
"""
import itertools

import httpx
import pytest

from shared.models.domain import LessonPlanStatus, ScheduleStatus
from shared.repositories.mirror_repository import MirrorRepository
from shared.utils.exceptions import DuplicateFeedbackException
from supervision.services.observation_service import ObservationService
from supervision.services.review_service import ReviewService
from tests.helpers.tpma_fakes import body_of, lesson_plan_payload, profile_payload


class _TPMAWorld:
    """Remote state that changes as the supervisor acts on it."""

    def __init__(self, fake):
        self.plans = {"lp-1": lesson_plan_payload()}
        self.schedules = {}
        self.feedback = []
        self._ids = itertools.count(1)

        fake.add_handler("GET", "/api/getsupervisors/sup-1", self.profile)
        fake.add_handler("PUT", "/api/supervisors/sup-1/lesson-plans/lp-1/review", self.review)
        fake.add_handler("POST", "/api/supervisors/sup-1/schedule-observation", self.schedule)
        fake.add_handler("PUT", "/api/supervisors/sup-1/observations/sch-1/status", self.status)
        fake.add_handler("POST", "/api/supervisors/sup-1/observations/sch-1/feedback", self.submit_feedback)

    def profile(self, request):
        return httpx.Response(200, json=profile_payload(
            lesson_plans=list(self.plans.values()),
            schedules=list(self.schedules.values()),
        ))

    def review(self, request):
        body = body_of(request)
        self.plans["lp-1"] = dict(self.plans["lp-1"], status=body["status"])
        return httpx.Response(200, json={"message": "Lesson plan reviewed", "lessonPlan": self.plans["lp-1"]})

    def schedule(self, request):
        body = body_of(request)
        schedule_id = f"sch-{next(self._ids)}"
        self.schedules[schedule_id] = {
            "id": schedule_id,
            "supervisorId": "sup-1",
            "traineeId": body["trainee_id"],
            "lesson_plan_id": body["lesson_plan_id"],
            "date": body["date"],
            "start_time": f"{body['start_time']}:00",
            "end_time": f"{body['end_time']}:00",
            "status": "SCHEDULED",
        }
        return httpx.Response(201, json={"schedule": self.schedules[schedule_id]})

    def status(self, request):
        self.schedules["sch-1"]["status"] = body_of(request)["status"]
        return httpx.Response(200, json={"schedule": self.schedules["sch-1"]})

    def submit_feedback(self, request):
        self.feedback.append(body_of(request))
        return httpx.Response(201, json={"message": "Feedback submitted"})


@pytest.fixture
def world(fake_tpma):
    return _TPMAWorld(fake_tpma)


def test_approve_observe_and_give_feedback_once(db_session, tpma_client, gate, world):
    reviews = ReviewService(db_session, tpma_client, gate=gate)
    observations = ObservationService(db_session, tpma_client, gate=gate)
    mirror = MirrorRepository(db_session)

    draft = reviews.review_lesson_plan("sup-1", "lp-1", "APPROVED", "Good plan").schedule_draft
    assert (draft.date, draft.start_time, draft.end_time) == ("2025-04-07", "09:00", "10:00")
    assert world.plans["lp-1"]["status"] == "PENDING"

    scheduled = reviews.confirm_schedule_and_approve(
        "sup-1", "lp-1", draft.trainee_id, draft.date, draft.start_time, draft.end_time,
        comments=draft.comments,
    )
    assert scheduled.schedule.id == "sch-1"
    assert scheduled.schedule.start_time == "09:00"
    assert scheduled.schedule.trainee_name == "Ada Obi"
    assert mirror.get_lesson_plan("sup-1", "lp-1").status == LessonPlanStatus.APPROVED
    assert mirror.get_schedule("sup-1", "sch-1").status == ScheduleStatus.SCHEDULED

    observations.advance_status("sup-1", "sch-1", "ONGOING")
    completed = observations.advance_status("sup-1", "sch-1", "COMPLETED")
    assert completed.schedule.status == ScheduleStatus.COMPLETED

    observations.submit_feedback("sup-1", "sch-1", 8, "Confident delivery")
    with pytest.raises(DuplicateFeedbackException):
        observations.submit_feedback("sup-1", "sch-1", 9, "Second attempt")

    assert world.feedback == [{
        "traineeId": "t1",
        "supervisorId": "sup-1",
        "lesson_plan_id": "lp-1",
        "schedule_id": "sch-1",
        "comments": "Confident delivery",
        "score": 8,
    }]
