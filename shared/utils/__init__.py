"""Utility functions and helpers."""
from .exceptions import (
    TPSupervisionException,
    ValidationFailedException,
    LessonPlanNotFoundException,
    ScheduleNotFoundException,
    InvalidTransitionException,
    FeedbackNotAllowedException,
    DuplicateFeedbackException,
    ApprovalReconciliationException,
    DatabaseException
)
from .pagination import Page, paginate, sort_records, total_pages

__all__ = [
    # Exceptions
    "TPSupervisionException",
    "ValidationFailedException",
    "LessonPlanNotFoundException",
    "ScheduleNotFoundException",
    "InvalidTransitionException",
    "FeedbackNotAllowedException",
    "DuplicateFeedbackException",
    "ApprovalReconciliationException",
    "DatabaseException",
    # Pagination
    "Page",
    "paginate",
    "sort_records",
    "total_pages",
]
