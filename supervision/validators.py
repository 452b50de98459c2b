"""Input validation run before any call reaches the TPMA API."""
from typing import Any, Optional

from shared.models.domain import (
    FeedbackDecision,
    ReviewDecision,
    ReviewStatus,
    ScheduleRequest,
)
from shared.utils.exceptions import ValidationFailedException
from shared.utils.time_utils import (
    is_valid_clock_time,
    is_valid_date,
    is_valid_time,
    is_valid_window,
)

MIN_SCORE = 0
MAX_SCORE = 10


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validate_score(score: Any, message: str) -> int:
    # bool is an int subclass but never a valid score
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationFailedException(message, field="score")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationFailedException(message, field="score")
    return score


def validate_review_decision(status: Any, comments: Any, score: Any = None) -> ReviewDecision:
    """Check a supervisor's review: APPROVED or REJECTED, non-empty comments, score 0-10 if given."""
    candidate = status.value if isinstance(status, ReviewStatus) else str(status or "").strip().upper()
    if candidate not in ReviewStatus.__members__:
        raise ValidationFailedException("Review status must be APPROVED or REJECTED.", field="status")

    if _is_blank(comments):
        raise ValidationFailedException("Comments are required", field="comments")

    if score is not None:
        score = _validate_score(score, "Score must be an integer between 0 and 10")

    return ReviewDecision(status=ReviewStatus(candidate), comments=comments, score=score)


def validate_schedule_request(
    lesson_plan_id: Optional[str],
    trainee_id: Optional[str],
    date: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
) -> ScheduleRequest:
    """
    Validate an observation schedule.

    Checks run in a fixed order and stop at the first failure: required
    fields, calendar date, HH:MM times, end after start.
    """
    for field, value in (
        ("lesson_plan_id", lesson_plan_id),
        ("trainee_id", trainee_id),
        ("date", date),
        ("start_time", start_time),
        ("end_time", end_time),
    ):
        if _is_blank(value):
            raise ValidationFailedException("Please fill in all required fields.", field=field)

    if not is_valid_date(date):
        raise ValidationFailedException("Please enter date in YYYY-MM-DD format.", field="date")

    if not is_valid_time(start_time) or not is_valid_time(end_time):
        raise ValidationFailedException(
            "Please enter times in HH:MM format (e.g., 09:00).",
            field="start_time" if not is_valid_time(start_time) else "end_time",
        )

    if not is_valid_window(start_time, end_time):
        raise ValidationFailedException("End time must be later than start time.", field="end_time")

    return ScheduleRequest(
        lesson_plan_id=lesson_plan_id,
        trainee_id=trainee_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
    )


def validate_feedback(score: Any, comments: Any) -> FeedbackDecision:
    if score is None:
        raise ValidationFailedException("Score is required", field="score")
    score = _validate_score(score, "Observation score must be between 0 and 10.")
    if _is_blank(comments):
        raise ValidationFailedException("Comments are required", field="comments")
    return FeedbackDecision(score=score, comments=comments)


def validate_draft_times(start_time: Optional[str], end_time: Optional[str]) -> None:
    """Times for saving an AI draft: both required, real clock times, end after start."""
    if _is_blank(start_time) or _is_blank(end_time):
        raise ValidationFailedException("Start time and end time are required.", field="start_time")
    if not is_valid_clock_time(start_time) or not is_valid_clock_time(end_time):
        raise ValidationFailedException(
            "Please enter times in HH:MM format (e.g., 09:00).",
            field="start_time" if not is_valid_clock_time(start_time) else "end_time",
        )
    if not is_valid_window(start_time, end_time):
        raise ValidationFailedException("End time must be later than start time.", field="end_time")
