"""
Lesson plan review and observation lifecycle transitions.

Lesson plans:  PENDING → APPROVED | REJECTED   (one shot, by supervisor review)
Observations:  SCHEDULED → ONGOING → COMPLETED (strictly forward, one step at a time)

All status changes initiated by this service are checked here first.
"""
from typing import Optional, Union

from shared.models.domain import LessonPlanStatus, ScheduleStatus
from shared.utils.exceptions import InvalidTransitionException

_NEXT_SCHEDULE_STATUS = {
    ScheduleStatus.SCHEDULED: ScheduleStatus.ONGOING,
    ScheduleStatus.ONGOING: ScheduleStatus.COMPLETED,
    ScheduleStatus.COMPLETED: None,
}


def parse_lesson_plan_status(value: Union[str, LessonPlanStatus]) -> LessonPlanStatus:
    """Parse a lesson plan status case-insensitively. Raises ValueError for unknown values."""
    if isinstance(value, LessonPlanStatus):
        return value
    return LessonPlanStatus(str(value).strip().upper())


def parse_schedule_status(value: Optional[Union[str, ScheduleStatus]]) -> ScheduleStatus:
    """Parse a schedule status; anything unrecognised reads as SCHEDULED."""
    if isinstance(value, ScheduleStatus):
        return value
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate in ScheduleStatus.__members__:
            return ScheduleStatus(candidate)
    return ScheduleStatus.SCHEDULED


def ensure_reviewable(status: Union[str, LessonPlanStatus]) -> None:
    """Only PENDING lesson plans can be reviewed."""
    current = parse_lesson_plan_status(status)
    if current != LessonPlanStatus.PENDING:
        raise InvalidTransitionException(
            current.value,
            "REVIEWED",
            "only pending lesson plans can be reviewed",
        )


def next_schedule_status(current: Union[str, ScheduleStatus]) -> Optional[ScheduleStatus]:
    return _NEXT_SCHEDULE_STATUS[parse_schedule_status(current)]


def advance(
    current: Union[str, ScheduleStatus],
    target: Union[str, ScheduleStatus],
) -> ScheduleStatus:
    """
    Validate a single forward step of the observation lifecycle.

    Returns the target status. Skipping ahead, going backwards, staying put and
    leaving COMPLETED are all rejected with InvalidTransitionException.
    """
    current_status = parse_schedule_status(current)
    if isinstance(target, ScheduleStatus):
        target_status = target
    else:
        candidate = str(target).strip().upper()
        if candidate not in ScheduleStatus.__members__:
            raise InvalidTransitionException(
                current_status.value, str(target), "unknown observation status"
            )
        target_status = ScheduleStatus(candidate)

    expected = next_schedule_status(current_status)
    if expected is None:
        raise InvalidTransitionException(
            current_status.value, target_status.value, "completed observations cannot change status"
        )
    if target_status != expected:
        raise InvalidTransitionException(
            current_status.value,
            target_status.value,
            f"next allowed status is {expected.value}",
        )
    return target_status


def can_submit_feedback(status: Union[str, ScheduleStatus]) -> bool:
    return parse_schedule_status(status) == ScheduleStatus.COMPLETED
