"""Response envelopes returned by the TPMA API."""
from typing import List, Optional

from pydantic import BaseModel, Field

from shared.models.domain import Feedback, LessonPlan, ObservationSchedule, WireModel


class ReviewResult(WireModel):
    """Outcome of a lesson plan review; approvals may create schedules server-side."""
    message: str = ""
    lesson_plan: LessonPlan = Field(alias="lessonPlan")
    feedback: Optional[Feedback] = None
    schedules: List[ObservationSchedule] = Field(default_factory=list)


class AIAnswer(BaseModel):
    """Markdown answer from the AI lesson plan chat endpoint."""
    answer: str
    conversation_id: str = ""
    message_id: Optional[str] = None


class LoginResult(BaseModel):
    token: str
    role: Optional[str] = None
    identifier: Optional[str] = None


class LessonPlanListing(WireModel):
    lesson_plans: List[LessonPlan] = Field(alias="lessonPlans")
    total_count: int = Field(0, alias="totalCount")
    total_pages: int = Field(1, alias="totalPages")
    current_page: Optional[int] = Field(None, alias="currentPage")


class ScheduleListing(WireModel):
    schedules: List[ObservationSchedule]
    total_count: int = Field(0, alias="totalCount")
    total_pages: int = Field(1, alias="totalPages")
    current_page: Optional[int] = Field(None, alias="currentPage")


class FeedbackListing(WireModel):
    feedback: List[Feedback]
    total_count: int = Field(0, alias="totalCount")
    total_pages: int = Field(1, alias="totalPages")
    current_page: Optional[int] = Field(None, alias="currentPage")
