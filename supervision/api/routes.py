"""Supervisor API endpoints - review, scheduling, observations and reports."""
import logging
import traceback
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import get_tpma_client, require_role
from auth.models.schemas import CurrentUser
from database import get_db
from lesson_plans.services.lesson_plan_service import LessonPlanService
from shared.models.domain import Feedback, LessonPlan, ObservationSchedule, Role
from shared.models.schemas import (
    ApproveRequest,
    FeedbackRequest,
    FeedbackResponse,
    PdfUrlResponse,
    RefreshResponse,
    ReviewRequest,
    ReviewResponse,
    ScheduleObservationRequest,
    ScheduleResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    SupervisorReport,
)
from shared.utils.exceptions import TPSupervisionException
from shared.utils.pagination import Page
from supervision.services.observation_service import ObservationService
from supervision.services.report_service import ReportService, export_report_csv
from supervision.services.review_service import ReviewService
from supervision.services.state_sync import SupervisorStateSync
from tpma.client import TPMAClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/supervisor", tags=["supervisor"])

supervisor_only = require_role(Role.SUPERVISOR.value)


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}\n{traceback.format_exc()}")
    return HTTPException(
        status_code=500,
        detail={"message": f"Error {action}: {str(e)}", "type": type(e).__name__},
    )


# ─── Lesson plans ──────────────────────────────────────────────────────


@router.get("/lesson-plans", response_model=Page[LessonPlan])
def list_lesson_plans(
    page: int = Query(1, ge=1),
    status: Optional[str] = Query(None, description="Comma separated, default PENDING,APPROVED"),
    search: Optional[str] = None,
    subject: Optional[str] = None,
    sort: Optional[str] = None,
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Lesson plans of the supervisor's trainees."""
    try:
        service = LessonPlanService(db, client)
        return service.list_for_supervisor(
            user.identifier, page, status, search, subject, sort, direction
        )
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("listing lesson plans", e)


@router.post("/lesson-plans/{lesson_plan_id}/review", response_model=ReviewResponse)
def review_lesson_plan(
    lesson_plan_id: str,
    request: ReviewRequest,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Reject a lesson plan, or get the schedule draft that completes an approval."""
    try:
        service = ReviewService(db, client)
        return service.review_lesson_plan(
            user.identifier, lesson_plan_id, request.status, request.comments, request.score
        )
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("reviewing lesson plan", e)


@router.post("/lesson-plans/{lesson_plan_id}/approve", response_model=ScheduleResponse)
def approve_lesson_plan(
    lesson_plan_id: str,
    request: ApproveRequest,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Approve a lesson plan together with its observation schedule."""
    try:
        service = ReviewService(db, client)
        return service.confirm_schedule_and_approve(
            user.identifier,
            lesson_plan_id,
            request.trainee_id,
            request.date,
            request.start_time,
            request.end_time,
            comments=request.comments,
            score=request.score,
        )
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("approving lesson plan", e)


# ─── Observations ──────────────────────────────────────────────────────


@router.get("/observations", response_model=Page[ObservationSchedule])
def list_observations(
    page: int = Query(1, ge=1),
    status: Optional[str] = None,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        service = ObservationService(db, client)
        return service.list_schedules(user.identifier, page, status)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("listing observations", e)


@router.post("/observations", response_model=ScheduleResponse)
def schedule_observation(
    request: ScheduleObservationRequest,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Schedule an observation for an approved lesson plan."""
    try:
        service = ReviewService(db, client)
        return service.schedule_observation(
            user.identifier,
            request.lesson_plan_id,
            request.trainee_id,
            request.date,
            request.start_time,
            request.end_time,
        )
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("scheduling observation", e)


@router.put("/observations/{schedule_id}/status", response_model=StatusUpdateResponse)
def update_observation_status(
    schedule_id: str,
    request: StatusUpdateRequest,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Advance an observation to ONGOING or COMPLETED."""
    try:
        service = ObservationService(db, client)
        return service.advance_status(user.identifier, schedule_id, request.status)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("updating observation status", e)


@router.post("/observations/{schedule_id}/feedback", response_model=FeedbackResponse)
def submit_feedback(
    schedule_id: str,
    request: FeedbackRequest,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Submit feedback for a completed observation (once per observation)."""
    try:
        service = ObservationService(db, client)
        return service.submit_feedback(user.identifier, schedule_id, request.score, request.comments)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("submitting feedback", e)


@router.get("/feedback", response_model=Page[Feedback])
def list_feedback(
    page: int = Query(1, ge=1),
    lesson_plan_id: Optional[str] = Query(None, alias="lessonPlanId"),
    search: Optional[str] = None,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        service = ObservationService(db, client)
        return service.list_feedback(user.identifier, page, lesson_plan_id, search)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("listing feedback", e)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    force: bool = False,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Pull the latest lesson plans and schedules from the TPMA API."""
    try:
        return RefreshResponse(refreshed=SupervisorStateSync(db, client).refresh(user.identifier, force=force))
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("refreshing supervisor data", e)


# ─── Reports ───────────────────────────────────────────────────────────


@router.get("/report", response_model=SupervisorReport)
def get_report(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
):
    try:
        return ReportService(client).build(user.identifier, start_date, end_date, search)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("building report", e)


@router.get("/report.csv")
def get_report_csv(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
):
    """Download the supervisor report as CSV."""
    try:
        report = ReportService(client).build(user.identifier, start_date, end_date, search)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("exporting report", e)
    return Response(
        content=export_report_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="supervisor-report-{user.identifier}.csv"'},
    )


@router.post("/report/pdf", response_model=PdfUrlResponse)
def generate_report_pdf(
    user: CurrentUser = Depends(supervisor_only),
    client: TPMAClient = Depends(get_tpma_client),
):
    """Render the supervisor report PDF remotely and return its URL."""
    try:
        return PdfUrlResponse(pdf_url=ReportService(client).generate_pdf(user.identifier))
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("generating report PDF", e)
