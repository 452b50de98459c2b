"""
Tests for supervision/api/routes.py REST endpoints.

The app runs with the real services against the fake TPMA API and an
in-memory database; only the database session and TPMA client are swapped.
"""
import pytest
from fastapi.testclient import TestClient

from tests.helpers.tpma_fakes import (
    feedback_payload,
    lesson_plan_payload,
    profile_payload,
    schedule_payload,
)

PROFILE_PATH = "/api/getsupervisors/sup-1"
REVIEW_PATH = "/api/supervisors/sup-1/lesson-plans/lp-1/review"


@pytest.fixture
def profile(fake_tpma, as_supervisor):
    fake_tpma.add("GET", PROFILE_PATH, profile_payload())


def _completed_profile():
    return profile_payload(
        lesson_plans=[lesson_plan_payload(status="APPROVED")],
        schedules=[schedule_payload(status="COMPLETED")],
    )


# ---------------------------------------------------------------------------
# Authentication and roles
# ---------------------------------------------------------------------------


class TestAccess:

    def test_missing_token(self, app):
        response = TestClient(app).get("/supervisor/lesson-plans")
        assert response.status_code == 401

    def test_rejected_token(self, client, fake_tpma):
        fake_tpma.add("GET", "/api/verify", {"error": "Invalid or expired token"}, status=401)

        response = client.get("/supervisor/lesson-plans")

        assert response.status_code == 401
        assert response.json()["detail"] == "Your session has expired. Please log in again."

    def test_trainee_forbidden(self, client, as_trainee):
        response = client.get("/supervisor/lesson-plans")
        assert response.status_code == 403
        assert response.json()["detail"] == "You are not authorized to perform this action."

    def test_token_from_cookie(self, app, profile):
        response = TestClient(app, cookies={"token": "test-token"}).get("/supervisor/lesson-plans")
        assert response.status_code == 200


# ---------------------------------------------------------------------------
# Lesson plan review
# ---------------------------------------------------------------------------


class TestLessonPlans:

    def test_list_uses_wire_names(self, client, profile):
        response = client.get("/supervisor/lesson-plans")

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 1
        assert data["currentPage"] == 1
        assert data["items"][0]["traineeId"] == "t1"
        assert data["items"][0]["class"] == "Primary 5"

    def test_list_rejects_unknown_status(self, client, profile):
        response = client.get("/supervisor/lesson-plans", params={"status": "DRAFT"})
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "status"

    def test_reject(self, client, profile, fake_tpma):
        fake_tpma.add("PUT", REVIEW_PATH, {"lessonPlan": lesson_plan_payload(status="REJECTED")})

        response = client.post(
            "/supervisor/lesson-plans/lp-1/review",
            json={"status": "REJECTED", "comments": "Objectives unclear"},
        )

        assert response.status_code == 200
        assert response.json()["lessonPlan"]["status"] == "REJECTED"

    def test_approve_returns_draft(self, client, profile):
        response = client.post(
            "/supervisor/lesson-plans/lp-1/review",
            json={"status": "APPROVED", "comments": "Good", "score": 8},
        )

        draft = response.json()["scheduleDraft"]
        assert draft["startTime"] == "09:00"
        assert draft["isApproval"] is True

    def test_review_validation_error(self, client, profile, fake_tpma):
        response = client.post(
            "/supervisor/lesson-plans/lp-1/review", json={"status": "REJECTED", "comments": ""}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == {"message": "Comments are required", "field": "comments"}
        assert fake_tpma.calls("PUT", REVIEW_PATH) == []

    def test_confirm_approval(self, client, profile, fake_tpma):
        fake_tpma.add("PUT", REVIEW_PATH, {
            "lessonPlan": lesson_plan_payload(status="APPROVED"),
            "schedules": [schedule_payload()],
        })

        response = client.post("/supervisor/lesson-plans/lp-1/approve", json={
            "traineeId": "t1", "date": "2025-04-07", "startTime": "09:00", "endTime": "10:00",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["highlightId"] == "sch-1"
        assert data["schedule"]["start_time"] == "09:00"
        assert data["lessonPlanStatus"] == "APPROVED"

    def test_confirm_partial_failure(self, client, profile, fake_tpma):
        fake_tpma.add("PUT", REVIEW_PATH, {"error": "boom"}, status=500)

        response = client.post("/supervisor/lesson-plans/lp-1/approve", json={
            "traineeId": "t1", "date": "2025-04-07", "startTime": "09:00", "endTime": "10:00",
        })

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["phase"] == "approval"
        assert detail["lessonPlanStatus"] == "PENDING"

    def test_unexpected_error_is_500(self, client, profile, mocker):
        mocker.patch(
            "supervision.api.routes.ReviewService.review_lesson_plan",
            side_effect=RuntimeError("kaboom"),
        )

        response = client.post(
            "/supervisor/lesson-plans/lp-1/review", json={"status": "REJECTED", "comments": "x"}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "message": "Error reviewing lesson plan: kaboom", "type": "RuntimeError"
        }


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


class TestObservations:

    def test_status_skip_is_conflict(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", PROFILE_PATH, profile_payload(schedules=[schedule_payload()]))

        response = client.put("/supervisor/observations/sch-1/status", json={"status": "COMPLETED"})

        assert response.status_code == 409

    def test_feedback_once(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", PROFILE_PATH, _completed_profile())
        fake_tpma.add("POST", "/api/supervisors/sup-1/observations/sch-1/feedback", {
            "feedback": feedback_payload()
        })

        first = client.post("/supervisor/observations/sch-1/feedback", json={"score": 8, "comments": "Good"})
        second = client.post("/supervisor/observations/sch-1/feedback", json={"score": 8, "comments": "Good"})

        assert first.status_code == 200
        assert first.json()["scheduleId"] == "sch-1"
        assert second.status_code == 409

    def test_feedback_missing_score(self, client, as_supervisor):
        response = client.post("/supervisor/observations/sch-1/feedback", json={"comments": "Good"})
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Score is required"

    def test_list_by_status(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", PROFILE_PATH, _completed_profile())

        response = client.get("/supervisor/observations", params={"status": "COMPLETED"})

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["items"]] == ["sch-1"]

    def test_schedule_ad_hoc(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", PROFILE_PATH, _completed_profile())
        fake_tpma.add("POST", "/api/supervisors/sup-1/schedule-observation", {
            "schedule": schedule_payload(id="sch-2")
        })

        response = client.post("/supervisor/observations", json={
            "lessonPlanId": "lp-1", "traineeId": "t1", "date": "2025-04-14",
            "startTime": "09:00", "endTime": "10:00",
        })

        assert response.status_code == 200
        assert response.json()["highlightId"] == "sch-2"

    def test_feedback_history(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", "/api/feedback", {"feedback": [feedback_payload()], "totalCount": 1, "totalPages": 1})

        response = client.get("/supervisor/feedback", params={"lessonPlanId": "lp-1"})

        assert response.status_code == 200
        assert response.json()["items"][0]["id"] == "fb-1"

    def test_refresh(self, client, profile):
        response = client.post("/supervisor/refresh", params={"force": True})
        assert response.json() == {"refreshed": True}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestReports:

    @pytest.fixture(autouse=True)
    def feedback(self, fake_tpma):
        fake_tpma.add("GET", "/api/feedback", {"feedback": [feedback_payload()], "totalCount": 1, "totalPages": 1})

    def test_report(self, client, profile):
        response = client.get("/supervisor/report", params={"startDate": "2025-04-01"})

        assert response.status_code == 200
        data = response.json()
        assert data["supervisorName"] == "Grace Mensah"
        assert data["metrics"]["feedbackSent"] == 1

    def test_report_csv(self, client, profile):
        response = client.get("/supervisor/report.csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert response.text.startswith("Supervisor,Grace Mensah")

    def test_report_bad_date(self, client, profile):
        response = client.get("/supervisor/report", params={"startDate": "yesterday"})
        assert response.status_code == 400

    def test_report_pdf(self, client, fake_tpma, as_supervisor):
        fake_tpma.add("GET", "/api/supervisors/sup-1/report", {"pdfUrl": "https://files.test/r.pdf"})

        response = client.post("/supervisor/report/pdf")

        assert response.json() == {"pdfUrl": "https://files.test/r.pdf"}
