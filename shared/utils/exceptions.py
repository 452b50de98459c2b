"""Custom exception hierarchy for better error handling."""
from typing import Optional

from fastapi import HTTPException, status


class TPSupervisionException(Exception):
    """Base exception for all application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=str(self))


class ValidationFailedException(TPSupervisionException):
    """Raised when user input fails client-side validation before any remote call."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={"message": self.message, "field": self.field}
        )


class LessonPlanNotFoundException(TPSupervisionException):
    """Raised when a lesson plan is not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, lesson_plan_id: str):
        self.lesson_plan_id = lesson_plan_id
        super().__init__(f"Lesson plan {lesson_plan_id} not found")


class ScheduleNotFoundException(TPSupervisionException):
    """Raised when an observation schedule is not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Observation schedule {schedule_id} not found")


class InvalidTransitionException(TPSupervisionException):
    """Raised when a lesson plan or schedule status change is not allowed."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, from_state: str, to_state: str, reason: str):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        super().__init__(
            f"Invalid status transition from '{from_state}' to '{to_state}': {reason}"
        )


class FeedbackNotAllowedException(TPSupervisionException):
    """Raised when feedback is submitted for a schedule that is not completed."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, schedule_id: str, current_status: str):
        self.schedule_id = schedule_id
        self.current_status = current_status
        super().__init__(
            "Feedback can only be submitted for completed observations "
            f"(schedule {schedule_id} is {current_status})"
        )


class DuplicateFeedbackException(TPSupervisionException):
    """Raised when a schedule already carries feedback."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Feedback was already submitted for observation {schedule_id}")


class ApprovalReconciliationException(TPSupervisionException):
    """
    Raised when the approve-then-schedule operation fails part way.

    Carries the phase that failed and the lesson plan status read back from the
    remote after re-fetching, so callers never have to guess which step landed.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        lesson_plan_id: str,
        phase: str,
        reconciled_status: Optional[str],
        original_error: Exception,
    ):
        self.lesson_plan_id = lesson_plan_id
        self.phase = phase
        self.reconciled_status = reconciled_status
        self.original_error = original_error
        super().__init__(
            f"Approval of lesson plan {lesson_plan_id} failed during {phase}: {original_error}"
        )

    def to_http_exception(self) -> HTTPException:
        status_code = getattr(self.original_error, "status_code", self.status_code)
        return HTTPException(
            status_code=status_code,
            detail={
                "message": str(self.original_error),
                "phase": self.phase,
                "lessonPlanId": self.lesson_plan_id,
                "lessonPlanStatus": self.reconciled_status,
            }
        )


class DatabaseException(TPSupervisionException):
    """Raised when database operations fail."""

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Database {operation} failed: {str(original_error)}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database operation failed"
        )
