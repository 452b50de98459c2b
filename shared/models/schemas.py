"""Pydantic API request/response schemas."""
from typing import List, Optional

from pydantic import BaseModel, Field

from .domain import (
    Feedback,
    LessonPlan,
    LessonPlanDraft,
    ObservationSchedule,
    ScheduleDraft,
    WireModel,
)


# ─── Requests ──────────────────────────────────────────────────────────


class ReviewRequest(BaseModel):
    """Supervisor decision on a pending lesson plan."""
    status: str
    comments: Optional[str] = None
    score: Optional[int] = None


class ApproveRequest(WireModel):
    """Confirmation of the schedule that accompanies an approval."""
    trainee_id: Optional[str] = Field(None, alias="traineeId")
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    comments: Optional[str] = None
    score: Optional[int] = None


class ScheduleObservationRequest(WireModel):
    """Ad-hoc observation scheduling."""
    lesson_plan_id: Optional[str] = Field(None, alias="lessonPlanId")
    trainee_id: Optional[str] = Field(None, alias="traineeId")
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")


class StatusUpdateRequest(BaseModel):
    status: str


class FeedbackRequest(BaseModel):
    score: Optional[int] = None
    comments: Optional[str] = None


class ParseMarkdownRequest(BaseModel):
    markdown: Optional[str] = None


class AIGenerateRequest(WireModel):
    query: str
    conversation_id: str = Field("", alias="conversationId")


class AIDraftSaveRequest(WireModel):
    """An AI draft as edited by the trainee before saving."""
    title: Optional[str] = None
    subject: Optional[str] = None
    class_name: Optional[str] = Field(None, alias="class")
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    objectives: Optional[str] = None
    activities: Optional[str] = None
    resources: Optional[str] = None


# ─── Responses ─────────────────────────────────────────────────────────


class ReviewResponse(WireModel):
    """
    Result of a review.

    Rejections are persisted immediately and carry the updated lesson plan.
    Approvals are not persisted yet and carry the pre-filled schedule draft.
    """
    message: str
    status: str
    lesson_plan: Optional[LessonPlan] = Field(None, alias="lessonPlan")
    schedule_draft: Optional[ScheduleDraft] = Field(None, alias="scheduleDraft")


class ScheduleResponse(WireModel):
    message: str
    schedule: ObservationSchedule
    lesson_plan_status: Optional[str] = Field(None, alias="lessonPlanStatus")
    highlight_id: Optional[str] = Field(None, alias="highlightId")


class StatusUpdateResponse(WireModel):
    message: str
    schedule: ObservationSchedule
    previous_status: str = Field(alias="previousStatus")


class FeedbackResponse(WireModel):
    message: str
    schedule_id: str = Field(alias="scheduleId")
    feedback: Optional[Feedback] = None


class RefreshResponse(BaseModel):
    refreshed: bool


class AIDraftResponse(WireModel):
    answer: str
    conversation_id: str = Field("", alias="conversationId")
    needs_more_detail: bool = Field(False, alias="needsMoreDetail")
    draft: Optional[LessonPlanDraft] = None


class SavedLessonPlanResponse(WireModel):
    message: str
    lesson_plan: LessonPlan = Field(alias="lessonPlan")
    pdf_url: str = Field(alias="pdfUrl")


class DeleteResponse(BaseModel):
    message: str


class PdfUrlResponse(WireModel):
    pdf_url: str = Field(alias="pdfUrl")


# ─── Reports ───────────────────────────────────────────────────────────


class ReportMetrics(WireModel):
    trainees_supervised: int = Field(0, alias="traineesSupervised")
    lesson_plans_reviewed: int = Field(0, alias="lessonPlansReviewed")
    observations_conducted: int = Field(0, alias="observationsConducted")
    feedback_sent: int = Field(0, alias="feedbackSent")


class TraineeBreakdown(WireModel):
    trainee_id: str = Field(alias="traineeId")
    name: str
    lesson_plans_submitted: int = Field(0, alias="lessonPlansSubmitted")
    lesson_plans_approved: int = Field(0, alias="lessonPlansApproved")
    observations: int = 0
    feedback_received: int = Field(0, alias="feedbackReceived")


class LessonPlanSummaryRow(WireModel):
    id: str
    title: str
    trainee_name: str = Field(alias="traineeName")
    subject: str
    date: str
    status: str


class SupervisorReport(WireModel):
    supervisor_id: str = Field(alias="supervisorId")
    supervisor_name: str = Field(alias="supervisorName")
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    metrics: ReportMetrics
    trainees: List[TraineeBreakdown] = Field(default_factory=list)
    lesson_plans: List[LessonPlanSummaryRow] = Field(default_factory=list, alias="lessonPlans")
