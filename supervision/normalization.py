"""Normalization of server records before they are mirrored or returned.

Used by both scheduling entry points and by every mirror refresh so that
schedules always carry HH:MM times, a known status and display names.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from shared.models.domain import LessonPlan, ObservationSchedule
from shared.utils.time_utils import normalize_time
from supervision.state_machine import parse_schedule_status

UNKNOWN_LESSON_PLAN = "Unknown Lesson Plan"
UNKNOWN_TRAINEE = "Unknown Trainee"
UNASSIGNED_SCHOOL = "Not Assigned"
UNKNOWN_CLASS = "Unknown"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_schedule(
    schedule: ObservationSchedule,
    lesson_plans: Iterable[LessonPlan],
    supervisor_id: Optional[str] = None,
) -> ObservationSchedule:
    """Return a copy of `schedule` with times trimmed and display fallbacks filled in."""
    plan = next((lp for lp in lesson_plans if lp.id == schedule.lesson_plan_id), None)

    title = (plan.title if plan else None) or schedule.lesson_plan_title or UNKNOWN_LESSON_PLAN
    trainee_name = (
        (plan.trainee_name if plan else None)
        or schedule.trainee_name
        or schedule.trainee_id
        or UNKNOWN_TRAINEE
    )

    return schedule.model_copy(update={
        "start_time": normalize_time(schedule.start_time),
        "end_time": normalize_time(schedule.end_time),
        "status": parse_schedule_status(schedule.status),
        "created_at": schedule.created_at or _utc_now_iso(),
        "lesson_plan_title": title,
        "trainee_name": trainee_name,
        "supervisor_id": supervisor_id or schedule.supervisor_id,
    })


def normalize_lesson_plan(plan: LessonPlan) -> LessonPlan:
    return plan.model_copy(update={
        "start_time": normalize_time(plan.start_time) or None,
        "end_time": normalize_time(plan.end_time) or None,
        "trainee_name": plan.trainee_name or plan.trainee_id or UNKNOWN_TRAINEE,
        "school_name": plan.school_name or UNASSIGNED_SCHOOL,
        "class_name": plan.class_name or UNKNOWN_CLASS,
    })
