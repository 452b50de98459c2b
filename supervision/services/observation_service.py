"""
Observation lifecycle: status advancement and feedback submission.

Status changes are applied to the mirror first, persisted remotely, and
reverted to the captured status if the TPMA API rejects them.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from config import Settings, get_settings
from shared.models.domain import Feedback, ObservationSchedule, ScheduleStatus
from shared.models.schemas import FeedbackResponse, StatusUpdateResponse
from shared.repositories.feedback_repository import FeedbackRepository
from shared.repositories.mirror_repository import MirrorRepository
from shared.utils.exceptions import (
    FeedbackNotAllowedException,
    ScheduleNotFoundException,
    ValidationFailedException,
)
from shared.utils.pagination import Page, paginate
from supervision.normalization import normalize_schedule
from supervision.services.state_sync import SupervisorStateSync
from supervision.state_machine import advance, can_submit_feedback
from supervision.validators import validate_feedback
from tpma.client import TPMAClient
from tpma.request_gate import FetchGate

logger = logging.getLogger(__name__)


class ObservationService:
    """Supervisor actions on scheduled observations."""

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
        self.ledger = FeedbackRepository(db)
        self.sync = SupervisorStateSync(db, client, gate)

    def _find_schedule(self, supervisor_id: str, schedule_id: str) -> ObservationSchedule:
        schedule = self.mirror.get_schedule(supervisor_id, schedule_id)
        if schedule is None:
            self.sync.refresh(supervisor_id, force=True)
            schedule = self.mirror.get_schedule(supervisor_id, schedule_id)
        if schedule is None:
            raise ScheduleNotFoundException(schedule_id)
        return schedule

    def advance_status(self, supervisor_id: str, schedule_id: str, target) -> StatusUpdateResponse:
        """
        Move an observation one step forward (SCHEDULED → ONGOING → COMPLETED).

        The mirror shows the new status before the remote call returns. If the
        remote call fails, the mirror gets the previous status back and the
        error is re-raised.
        """
        schedule = self._find_schedule(supervisor_id, schedule_id)
        new_status = advance(schedule.status, target)

        previous = self.mirror.set_schedule_status(supervisor_id, schedule_id, new_status)
        if previous is None:
            raise ScheduleNotFoundException(schedule_id)

        try:
            updated = self.client.update_observation_status(supervisor_id, schedule_id, new_status)
        except Exception as e:
            self.mirror.restore_schedule_status(supervisor_id, schedule_id, previous)
            logger.warning(
                f"Status update of observation {schedule_id} to {new_status.value} failed, "
                f"rolled back to {previous.value}: {e}"
            )
            raise

        normalized = normalize_schedule(
            updated, self.mirror.list_lesson_plans(supervisor_id), supervisor_id
        )
        logger.info(f"Observation {schedule_id} moved {previous.value} → {new_status.value}")
        self.sync.refresh_after_mutation(supervisor_id)
        return StatusUpdateResponse(
            message=f"Observation marked as {new_status.value.lower()}",
            schedule=normalized,
            previous_status=previous.value,
        )

    def submit_feedback(self, supervisor_id: str, schedule_id: str, score, comments) -> FeedbackResponse:
        """
        Record feedback on a completed observation, at most once per schedule.

        Input is validated before any remote call. The ledger slot is reserved
        first and released again if the TPMA API rejects the submission.
        """
        decision = validate_feedback(score, comments)
        schedule = self._find_schedule(supervisor_id, schedule_id)
        if not can_submit_feedback(schedule.status):
            raise FeedbackNotAllowedException(schedule_id, schedule.status.value)

        record_id = self.ledger.reserve(
            schedule_id=schedule.id,
            supervisor_id=supervisor_id,
            trainee_id=schedule.trainee_id,
            score=decision.score,
            comments=decision.comments,
            lesson_plan_id=schedule.lesson_plan_id,
        )

        payload = {
            "traineeId": schedule.trainee_id,
            "supervisorId": supervisor_id,
            "lesson_plan_id": schedule.lesson_plan_id,
            "schedule_id": schedule.id,
            "comments": decision.comments,
            "score": decision.score,
        }
        try:
            feedback = self.client.submit_observation_feedback(supervisor_id, schedule.id, payload)
        except Exception:
            self.ledger.release(record_id)
            raise

        self.ledger.confirm(record_id, feedback.id if feedback else None)
        self.sync.refresh_after_mutation(supervisor_id)
        return FeedbackResponse(
            message="Feedback submitted successfully",
            schedule_id=schedule.id,
            feedback=feedback,
        )

    def list_schedules(
        self,
        supervisor_id: str,
        page: int = 1,
        status: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Page[ObservationSchedule]:
        status_filter = None
        if status:
            candidate = status.strip().upper()
            if candidate not in ScheduleStatus.__members__:
                raise ValidationFailedException(
                    f"Unknown observation status '{status}'", field="status"
                )
            status_filter = ScheduleStatus(candidate)

        self.sync.ensure_loaded(supervisor_id)
        schedules = self.mirror.list_schedules(supervisor_id, status_filter)
        return paginate(schedules, page, page_size or self.settings.default_page_size)

    def list_feedback(
        self,
        supervisor_id: str,
        page: int = 1,
        lesson_plan_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Page[Feedback]:
        """Feedback history as recorded by the TPMA API."""
        return self.client.get_observation_feedback(
            supervisor_id,
            page=page,
            lesson_plan_id=lesson_plan_id,
            search=search,
            limit=self.settings.feedback_page_size,
        )
