"""Local mirror of each supervisor's remote lesson plans and schedules."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from shared.models.domain import LessonPlan, ObservationSchedule, ScheduleStatus
from shared.models.entities import MirroredLessonPlan, MirroredSchedule
from shared.utils.exceptions import DatabaseException

logger = logging.getLogger(__name__)


def _plan_to_row(supervisor_id: str, plan: LessonPlan, synced_at: datetime) -> MirroredLessonPlan:
    return MirroredLessonPlan(
        supervisor_id=supervisor_id,
        id=plan.id,
        trainee_id=plan.trainee_id,
        title=plan.title,
        subject=plan.subject,
        class_name=plan.class_name,
        date=plan.date,
        start_time=plan.start_time,
        end_time=plan.end_time,
        objectives=plan.objectives,
        activities=plan.activities,
        resources=plan.resources,
        status=plan.status.value,
        ai_generated=plan.ai_generated,
        trainee_name=plan.trainee_name,
        school_name=plan.school_name,
        pdf_url=plan.pdf_url,
        remote_created_at=plan.created_at,
        synced_at=synced_at,
    )


def _row_to_plan(row: MirroredLessonPlan) -> LessonPlan:
    return LessonPlan(
        id=row.id,
        trainee_id=row.trainee_id,
        title=row.title,
        subject=row.subject,
        class_name=row.class_name,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        objectives=row.objectives,
        activities=row.activities,
        resources=row.resources,
        created_at=row.remote_created_at,
        status=row.status,
        ai_generated=row.ai_generated,
        trainee_name=row.trainee_name,
        school_name=row.school_name,
        supervisor_id=row.supervisor_id,
        pdf_url=row.pdf_url,
    )


def _schedule_to_row(
    supervisor_id: str, schedule: ObservationSchedule, synced_at: datetime
) -> MirroredSchedule:
    return MirroredSchedule(
        supervisor_id=supervisor_id,
        id=schedule.id,
        trainee_id=schedule.trainee_id,
        lesson_plan_id=schedule.lesson_plan_id,
        date=schedule.date,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        status=schedule.status.value,
        lesson_plan_title=schedule.lesson_plan_title,
        trainee_name=schedule.trainee_name,
        remote_created_at=schedule.created_at,
        synced_at=synced_at,
    )


def _row_to_schedule(row: MirroredSchedule) -> ObservationSchedule:
    return ObservationSchedule(
        id=row.id,
        supervisor_id=row.supervisor_id,
        trainee_id=row.trainee_id,
        lesson_plan_id=row.lesson_plan_id,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        status=row.status,
        created_at=row.remote_created_at,
        lesson_plan_title=row.lesson_plan_title,
        trainee_name=row.trainee_name,
    )


class MirrorRepository:
    """Repository for the per-supervisor mirror tables."""

    def __init__(self, db: DBSession):
        self.db = db

    def replace_supervisor_state(
        self,
        supervisor_id: str,
        lesson_plans: Iterable[LessonPlan],
        schedules: Iterable[ObservationSchedule],
    ) -> None:
        """
        Swap a supervisor's mirrored records for a fresh remote snapshot.

        Runs as one transaction: readers see either the old or the new snapshot.
        """
        synced_at = datetime.utcnow()
        try:
            self.db.query(MirroredLessonPlan).filter(
                MirroredLessonPlan.supervisor_id == supervisor_id
            ).delete(synchronize_session=False)
            self.db.query(MirroredSchedule).filter(
                MirroredSchedule.supervisor_id == supervisor_id
            ).delete(synchronize_session=False)

            plan_rows = {plan.id: _plan_to_row(supervisor_id, plan, synced_at) for plan in lesson_plans}
            schedule_rows = {
                schedule.id: _schedule_to_row(supervisor_id, schedule, synced_at)
                for schedule in schedules
            }
            self.db.add_all(list(plan_rows.values()))
            self.db.add_all(list(schedule_rows.values()))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("mirror replace", e) from e

        logger.info(
            f"Mirror for supervisor {supervisor_id} replaced: "
            f"{len(plan_rows)} lesson plans, {len(schedule_rows)} schedules"
        )

    def has_state(self, supervisor_id: str) -> bool:
        return self.last_synced_at(supervisor_id) is not None

    def last_synced_at(self, supervisor_id: str) -> Optional[datetime]:
        plan = self.db.query(MirroredLessonPlan.synced_at).filter(
            MirroredLessonPlan.supervisor_id == supervisor_id
        ).first()
        if plan:
            return plan[0]
        schedule = self.db.query(MirroredSchedule.synced_at).filter(
            MirroredSchedule.supervisor_id == supervisor_id
        ).first()
        return schedule[0] if schedule else None

    # ─── Lesson plans ──────────────────────────────────────────────────

    def list_lesson_plans(self, supervisor_id: str) -> List[LessonPlan]:
        rows = (
            self.db.query(MirroredLessonPlan)
            .filter(MirroredLessonPlan.supervisor_id == supervisor_id)
            .order_by(MirroredLessonPlan.remote_created_at.desc(), MirroredLessonPlan.id)
            .all()
        )
        return [_row_to_plan(row) for row in rows]

    def get_lesson_plan(self, supervisor_id: str, lesson_plan_id: str) -> Optional[LessonPlan]:
        row = self.db.query(MirroredLessonPlan).filter(
            MirroredLessonPlan.supervisor_id == supervisor_id,
            MirroredLessonPlan.id == lesson_plan_id,
        ).first()
        return _row_to_plan(row) if row else None

    # ─── Schedules ─────────────────────────────────────────────────────

    def list_schedules(
        self, supervisor_id: str, status: Optional[ScheduleStatus] = None
    ) -> List[ObservationSchedule]:
        query = self.db.query(MirroredSchedule).filter(
            MirroredSchedule.supervisor_id == supervisor_id
        )
        if status is not None:
            query = query.filter(MirroredSchedule.status == ScheduleStatus(status).value)
        rows = query.order_by(
            MirroredSchedule.date, MirroredSchedule.start_time, MirroredSchedule.id
        ).all()
        return [_row_to_schedule(row) for row in rows]

    def get_schedule(self, supervisor_id: str, schedule_id: str) -> Optional[ObservationSchedule]:
        row = self._schedule_row(supervisor_id, schedule_id)
        return _row_to_schedule(row) if row else None

    def set_schedule_status(
        self, supervisor_id: str, schedule_id: str, status: ScheduleStatus
    ) -> Optional[ScheduleStatus]:
        """Overwrite a mirrored schedule's status. Returns the previous status, or None if absent."""
        row = self._schedule_row(supervisor_id, schedule_id)
        if not row:
            return None
        previous = ScheduleStatus(row.status)
        row.status = ScheduleStatus(status).value
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("mirror status update", e) from e
        logger.info(f"Mirror schedule {schedule_id} status {previous.value} → {row.status}")
        return previous

    def restore_schedule_status(
        self, supervisor_id: str, schedule_id: str, status: ScheduleStatus
    ) -> None:
        """Put back a status captured before an optimistic update."""
        if self.set_schedule_status(supervisor_id, schedule_id, status) is None:
            logger.warning(f"Cannot restore status: schedule {schedule_id} not in mirror")

    def _schedule_row(self, supervisor_id: str, schedule_id: str) -> Optional[MirroredSchedule]:
        return self.db.query(MirroredSchedule).filter(
            MirroredSchedule.supervisor_id == supervisor_id,
            MirroredSchedule.id == schedule_id,
        ).first()
