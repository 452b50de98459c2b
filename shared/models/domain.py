"""Domain models for business logic.

Field aliases follow the TPMA API wire names so records can be validated
straight from remote responses and returned to the dashboard unchanged.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.utils.time_utils import normalize_date, normalize_time


class LessonPlanStatus(str, Enum):
    """Superset of the lesson plan statuses seen across dashboard views."""
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"  # trainee-facing only; never produced by review
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReviewStatus(str, Enum):
    """Decisions a supervisor may submit for a pending lesson plan."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScheduleStatus(str, Enum):
    """Observation schedule lifecycle, strictly forward moving."""
    SCHEDULED = "SCHEDULED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


class Role(str, Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    TEACHER_TRAINEE = "teacherTrainee"


def _id_to_str(value: Any) -> Any:
    # The API sends some identifiers as numbers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class WireModel(BaseModel):
    """Base for records exchanged with the TPMA API."""
    model_config = ConfigDict(populate_by_name=True)


class LessonPlan(WireModel):
    """A trainee's lesson plan as mirrored from the TPMA API."""
    id: str
    trainee_id: str = Field(alias="traineeId")
    title: str = ""
    subject: str = ""
    class_name: Optional[str] = Field(None, alias="class")
    date: str = ""
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    objectives: Optional[str] = None
    activities: Optional[str] = None
    resources: Optional[str] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    status: LessonPlanStatus = LessonPlanStatus.PENDING
    ai_generated: bool = Field(False, alias="aiGenerated")
    trainee_name: Optional[str] = Field(None, alias="traineeName")
    supervisor_name: Optional[str] = Field(None, alias="supervisorName")
    school_name: Optional[str] = Field(None, alias="schoolName")
    school_id: Optional[str] = Field(None, alias="schoolId")
    supervisor_id: Optional[str] = Field(None, alias="supervisorId")
    pdf_url: Optional[str] = Field(None, alias="pdfUrl")

    @field_validator("id", "trainee_id", "school_id", "supervisor_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _upper_status(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _trim_date(cls, value):
        return normalize_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _trim_times(cls, value):
        if value is None:
            return None
        return normalize_time(value)

    @field_validator("ai_generated", mode="before")
    @classmethod
    def _none_is_false(cls, value):
        return False if value is None else value


class ObservationSchedule(WireModel):
    """An observation visit scheduled against an approved lesson plan."""
    id: str
    supervisor_id: Optional[str] = Field(None, alias="supervisorId")
    trainee_id: str = Field(alias="traineeId")
    lesson_plan_id: str
    date: str
    start_time: str = ""
    end_time: str = ""
    status: ScheduleStatus = ScheduleStatus.SCHEDULED
    created_at: Optional[str] = None
    lesson_plan_title: Optional[str] = Field(None, alias="lessonPlanTitle")
    trainee_name: Optional[str] = Field(None, alias="traineeName")

    @field_validator("id", "supervisor_id", "trainee_id", "lesson_plan_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)

    @field_validator("date", mode="before")
    @classmethod
    def _trim_date(cls, value):
        return normalize_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _trim_times(cls, value):
        return normalize_time(value)

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value):
        # Unknown or missing statuses read as SCHEDULED
        if isinstance(value, str) and value.strip().upper() in ScheduleStatus.__members__:
            return value.strip().upper()
        return ScheduleStatus.SCHEDULED


class Feedback(WireModel):
    """Observation or review feedback recorded by the TPMA API."""
    id: str
    lesson_plan_id: Optional[str] = None
    schedule_id: Optional[str] = None
    trainee_id: str = Field(alias="traineeId")
    supervisor_id: str = Field(alias="supervisorId")
    score: Optional[int] = None
    comments: str = ""
    created_at: Optional[str] = None
    lesson_plan_title: Optional[str] = Field(None, alias="lessonPlanTitle")
    trainee_name: Optional[str] = Field(None, alias="traineeName")
    supervisor_name: Optional[str] = Field(None, alias="supervisorName")

    @field_validator("id", "lesson_plan_id", "schedule_id", "trainee_id", "supervisor_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)


class AssignedTrainee(WireModel):
    """Trainee placed under a supervisor."""
    id: str
    name: str = ""
    surname: str = ""
    reg_no: Optional[str] = Field(None, alias="regNo")
    email: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()


class SupervisorProfile(WireModel):
    """Supervisor profile with the lesson plans and schedules it oversees."""
    id: str
    staff_id: Optional[str] = Field(None, alias="staffId")
    name: str = ""
    surname: str = ""
    email: Optional[str] = None
    place_of_supervision: Optional[str] = Field(None, alias="placeOfSupervision")
    assigned_trainees: List[AssignedTrainee] = Field(default_factory=list, alias="assignedTrainees")
    lesson_plans: List[LessonPlan] = Field(default_factory=list, alias="lessonPlans")
    schedules: List[ObservationSchedule] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)


class VerifiedIdentity(BaseModel):
    """Identity returned by the TPMA token verification endpoint."""
    role: str
    identifier: str

    @field_validator("identifier", mode="before")
    @classmethod
    def _coerce_ids(cls, value):
        return _id_to_str(value)


class ReviewDecision(BaseModel):
    """A validated supervisor review of a lesson plan."""
    status: ReviewStatus
    comments: str
    score: Optional[int] = None


class ScheduleRequest(BaseModel):
    """A validated request to place an observation on the calendar."""
    lesson_plan_id: str
    trainee_id: str
    date: str
    start_time: str
    end_time: str


class FeedbackDecision(BaseModel):
    """Validated observation feedback."""
    score: int
    comments: str


class ScheduleDraft(WireModel):
    """Pre-filled schedule form produced when a reviewer chooses to approve."""
    lesson_plan_id: str = Field(alias="lessonPlanId")
    trainee_id: str = Field(alias="traineeId")
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    lesson_plan_title: str = Field(alias="lessonPlanTitle")
    trainee_name: str = Field(alias="traineeName")
    comments: str
    score: Optional[int] = None
    is_approval: bool = Field(True, alias="isApproval")


class LessonPlanDraft(BaseModel):
    """Partial lesson plan extracted from AI-generated markdown. Every field is optional text."""
    title: Optional[str] = None
    subject: Optional[str] = None
    class_name: Optional[str] = None
    duration: Optional[str] = None
    resources: Optional[str] = None
    objectives: Optional[str] = None
    activities: Optional[str] = None
    rationale: Optional[str] = None
    homework: Optional[str] = None
    references: Optional[str] = None


class LessonPlanInput(WireModel):
    """Body accepted by the TPMA lesson plan create and update endpoints."""
    title: str
    subject: str
    class_name: str = Field(alias="class")
    date: str
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    objectives: str
    activities: str
    resources: str
    status: Optional[str] = None
    ai_generated: Optional[bool] = Field(None, alias="aiGenerated")
    pdf_url: Optional[str] = Field(None, alias="pdfUrl")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
