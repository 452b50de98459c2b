"""
Lesson plan review and observation scheduling.

Review flow:
    reject  → persisted immediately, mirror re-fetched
    approve → not persisted; returns a pre-filled schedule draft
    confirm → phase "approval" (review endpoint, may create the schedule)
              then phase "scheduling" if no schedule came back

A failure in either confirm phase re-fetches the mirror and reports the
lesson plan status read back from the TPMA API.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from config import Settings, get_settings
from shared.models.domain import (
    LessonPlan,
    LessonPlanStatus,
    ReviewStatus,
    ScheduleDraft,
)
from shared.models.schemas import ReviewResponse, ScheduleResponse
from shared.repositories.mirror_repository import MirrorRepository
from shared.utils.exceptions import (
    ApprovalReconciliationException,
    InvalidTransitionException,
    LessonPlanNotFoundException,
    TPSupervisionException,
    ValidationFailedException,
)
from shared.utils.time_utils import is_valid_window
from supervision.normalization import UNKNOWN_LESSON_PLAN, UNKNOWN_TRAINEE, normalize_schedule
from supervision.services.state_sync import SupervisorStateSync
from supervision.state_machine import ensure_reviewable
from supervision.validators import validate_review_decision, validate_schedule_request
from tpma.client import TPMAClient
from tpma.request_gate import FetchGate

logger = logging.getLogger(__name__)

DEFAULT_APPROVAL_COMMENT = "Approved with scheduled observation"

PHASE_APPROVAL = "approval"
PHASE_SCHEDULING = "scheduling"


class ReviewService:
    """Supervisor review of lesson plans and the scheduling that follows approval."""

    def __init__(
        self,
        db: DBSession,
        client: TPMAClient,
        gate: Optional[FetchGate] = None,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.mirror = MirrorRepository(db)
        self.sync = SupervisorStateSync(db, client, gate)

    def _find_lesson_plan(self, supervisor_id: str, lesson_plan_id: str) -> LessonPlan:
        """Look up a plan in the mirror, re-fetching once on a miss."""
        plan = self.mirror.get_lesson_plan(supervisor_id, lesson_plan_id)
        if plan is None:
            self.sync.refresh(supervisor_id, force=True)
            plan = self.mirror.get_lesson_plan(supervisor_id, lesson_plan_id)
        if plan is None:
            raise LessonPlanNotFoundException(lesson_plan_id)
        return plan

    def _draft_window(self, plan: LessonPlan):
        if is_valid_window(plan.start_time, plan.end_time):
            return plan.start_time, plan.end_time
        return self.settings.default_observation_start, self.settings.default_observation_end

    def review_lesson_plan(
        self,
        supervisor_id: str,
        lesson_plan_id: str,
        status,
        comments,
        score=None,
    ) -> ReviewResponse:
        """Reject a pending plan outright, or start its approval by drafting a schedule."""
        decision = validate_review_decision(status, comments, score)
        plan = self._find_lesson_plan(supervisor_id, lesson_plan_id)
        ensure_reviewable(plan.status)

        if decision.status == ReviewStatus.REJECTED:
            result = self.client.review_lesson_plan(supervisor_id, plan.id, decision)
            logger.info(f"Lesson plan {plan.id} rejected by supervisor {supervisor_id}")
            self.sync.refresh_after_mutation(supervisor_id)
            return ReviewResponse(
                message="Lesson plan rejected",
                status=ReviewStatus.REJECTED.value,
                lesson_plan=result.lesson_plan,
            )

        start_time, end_time = self._draft_window(plan)
        draft = ScheduleDraft(
            lesson_plan_id=plan.id,
            trainee_id=plan.trainee_id,
            date=plan.date,
            start_time=start_time,
            end_time=end_time,
            lesson_plan_title=plan.title or UNKNOWN_LESSON_PLAN,
            trainee_name=plan.trainee_name or plan.trainee_id or UNKNOWN_TRAINEE,
            comments=decision.comments,
            score=decision.score,
        )
        return ReviewResponse(
            message="Confirm the observation schedule to approve this lesson plan",
            status=ReviewStatus.APPROVED.value,
            schedule_draft=draft,
        )

    def confirm_schedule_and_approve(
        self,
        supervisor_id: str,
        lesson_plan_id: str,
        trainee_id: Optional[str],
        date: Optional[str],
        start_time: Optional[str],
        end_time: Optional[str],
        comments: Optional[str] = None,
        score=None,
    ) -> ScheduleResponse:
        """
        Persist an approval together with its observation schedule.

        Raises ApprovalReconciliationException when either phase fails; the
        exception carries the failed phase and the lesson plan status read
        back after re-fetching.
        """
        request = validate_schedule_request(lesson_plan_id, trainee_id, date, start_time, end_time)
        if comments is None or not comments.strip():
            comments = DEFAULT_APPROVAL_COMMENT
        decision = validate_review_decision(ReviewStatus.APPROVED, comments, score)

        plan = self._find_lesson_plan(supervisor_id, request.lesson_plan_id)
        ensure_reviewable(plan.status)
        if plan.trainee_id != request.trainee_id:
            raise ValidationFailedException(
                "The selected trainee does not own this lesson plan.", field="trainee_id"
            )

        phase = PHASE_APPROVAL
        try:
            result = self.client.review_lesson_plan(supervisor_id, plan.id, decision)
            # Schedules for other plans in the response are ignored
            schedule = next((s for s in result.schedules if s.lesson_plan_id == plan.id), None)
            if schedule is None:
                phase = PHASE_SCHEDULING
                schedule = self.client.schedule_observation(supervisor_id, request)
        except Exception as e:
            reconciled = self._reconcile(supervisor_id, plan.id)
            logger.error(
                f"Approval of lesson plan {plan.id} failed during {phase}; "
                f"status after re-fetch: {reconciled}"
            )
            raise ApprovalReconciliationException(plan.id, phase, reconciled, e) from e

        normalized = normalize_schedule(schedule, [plan], supervisor_id)
        logger.info(
            f"Lesson plan {plan.id} approved; observation {normalized.id} scheduled "
            f"for {normalized.date} {normalized.start_time}-{normalized.end_time}"
        )
        self.sync.refresh_after_mutation(supervisor_id)
        return ScheduleResponse(
            message="Lesson plan approved and observation scheduled",
            schedule=normalized,
            lesson_plan_status=LessonPlanStatus.APPROVED.value,
            highlight_id=normalized.id,
        )

    def schedule_observation(
        self,
        supervisor_id: str,
        lesson_plan_id: Optional[str],
        trainee_id: Optional[str],
        date: Optional[str],
        start_time: Optional[str],
        end_time: Optional[str],
    ) -> ScheduleResponse:
        """Schedule an observation for an already approved lesson plan."""
        request = validate_schedule_request(lesson_plan_id, trainee_id, date, start_time, end_time)
        plan = self._find_lesson_plan(supervisor_id, request.lesson_plan_id)
        if plan.status != LessonPlanStatus.APPROVED:
            raise InvalidTransitionException(
                plan.status.value,
                "SCHEDULED",
                "only approved lesson plans can be scheduled for observation",
            )

        schedule = self.client.schedule_observation(supervisor_id, request)
        normalized = normalize_schedule(schedule, [plan], supervisor_id)
        logger.info(f"Observation {normalized.id} scheduled for lesson plan {plan.id}")
        self.sync.refresh_after_mutation(supervisor_id)
        return ScheduleResponse(
            message="Observation scheduled",
            schedule=normalized,
            lesson_plan_status=plan.status.value,
            highlight_id=normalized.id,
        )

    def _reconcile(self, supervisor_id: str, lesson_plan_id: str) -> Optional[str]:
        """Re-fetch the mirror and return the authoritative plan status, or None if unknown."""
        try:
            self.sync.refresh(supervisor_id, force=True)
        except TPSupervisionException as e:
            logger.error(f"Reconciliation re-fetch failed for supervisor {supervisor_id}: {e}")
            return None
        plan = self.mirror.get_lesson_plan(supervisor_id, lesson_plan_id)
        return plan.status.value if plan else None
