"""
Lesson plan service - listings, CRUD and AI-assisted drafting.

Supervisor listings are served from the local mirror. Trainee listings and
all writes go straight to the TPMA API, which owns the one-pending-plan rule
and reports it in its own words.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session as DBSession

from config import Settings, get_settings
from lesson_plans.markdown_parser import parse_markdown_lesson_plan
from shared.models.domain import LessonPlan, LessonPlanInput, LessonPlanStatus
from shared.models.schemas import AIDraftResponse, AIDraftSaveRequest, SavedLessonPlanResponse
from shared.repositories.mirror_repository import MirrorRepository
from shared.utils.exceptions import ValidationFailedException
from shared.utils.pagination import Page, paginate, sort_records
from shared.utils.time_utils import is_valid_date, is_valid_time, is_valid_window
from supervision.services.state_sync import SupervisorStateSync
from supervision.validators import validate_draft_times
from tpma.client import TPMAClient
from tpma.request_gate import FetchGate

logger = logging.getLogger(__name__)

DEFAULT_SUPERVISOR_STATUSES = "PENDING,APPROVED"

# The AI endpoint answers with this phrase when the prompt lacks detail
NEEDS_MORE_DETAIL_MARKER = "please provide the specific details"

SORTABLE_FIELDS = {"title", "subject", "date", "status", "trainee_name", "created_at", "class_name"}


def parse_status_filter(value: Optional[str]) -> List[LessonPlanStatus]:
    """Parse a comma separated status list such as 'PENDING,APPROVED'."""
    statuses = []
    for part in (value or DEFAULT_SUPERVISOR_STATUSES).split(","):
        candidate = part.strip().upper()
        if not candidate:
            continue
        if candidate not in LessonPlanStatus.__members__:
            raise ValidationFailedException(f"Unknown lesson plan status '{part.strip()}'", field="status")
        statuses.append(LessonPlanStatus(candidate))
    return statuses


def _require_text(value: Optional[str], field: str, label: str) -> None:
    if value is None or not value.strip():
        raise ValidationFailedException(f"{label} is required", field=field)


def validate_lesson_plan_input(data: LessonPlanInput) -> None:
    """Checks applied before a lesson plan is created or updated."""
    _require_text(data.title, "title", "Title")
    _require_text(data.subject, "subject", "Subject")
    _require_text(data.class_name, "class", "Class")
    _require_text(data.objectives, "objectives", "Objectives")
    _require_text(data.activities, "activities", "Activities")
    _require_text(data.resources, "resources", "Resources")

    if not is_valid_date(data.date):
        raise ValidationFailedException("Please enter date in YYYY-MM-DD format.", field="date")

    if data.start_time or data.end_time:
        if not is_valid_time(data.start_time) or not is_valid_time(data.end_time):
            raise ValidationFailedException(
                "Please enter times in HH:MM format (e.g., 09:00).", field="startTime"
            )
        if not is_valid_window(data.start_time, data.end_time):
            raise ValidationFailedException("End time must be later than start time.", field="endTime")


class LessonPlanService:
    """Lesson plan operations for supervisors and trainees."""

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
        self.sync = SupervisorStateSync(db, client, gate)

    # ─── Listings ──────────────────────────────────────────────────────

    def list_for_supervisor(
        self,
        supervisor_id: str,
        page: int = 1,
        statuses: Optional[str] = None,
        search: Optional[str] = None,
        subject: Optional[str] = None,
        sort_field: Optional[str] = None,
        sort_direction: str = "asc",
    ) -> Page[LessonPlan]:
        """
        Lesson plans of the supervisor's trainees, filtered and paged locally.

        The mirror is refreshed first unless another refresh ran within the
        fetch gate's minimum interval.
        """
        wanted = set(parse_status_filter(statuses))
        if sort_field and sort_field not in SORTABLE_FIELDS:
            raise ValidationFailedException(f"Cannot sort by '{sort_field}'", field="sort")

        self.sync.refresh(supervisor_id)
        plans = [plan for plan in self.mirror.list_lesson_plans(supervisor_id) if plan.status in wanted]

        if search:
            needle = search.lower()
            plans = [
                plan for plan in plans
                if needle in (plan.title or "").lower()
                or needle in (plan.subject or "").lower()
                or needle in (plan.trainee_name or "").lower()
            ]
        if subject:
            plans = [plan for plan in plans if plan.subject == subject]

        plans = sort_records(plans, sort_field, sort_direction)
        return paginate(plans, page, self.settings.default_page_size)

    def list_for_trainee(
        self,
        trainee_id: Optional[str],
        page: int = 1,
        search: Optional[str] = None,
        subject: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Page[LessonPlan]:
        if status:
            status = ",".join(s.value for s in parse_status_filter(status))
        return self.client.get_lesson_plans(
            trainee_id=trainee_id,
            page=max(1, page),
            limit=self.settings.default_page_size,
            search=search,
            subject=subject,
            status=status,
        )

    # ─── CRUD ──────────────────────────────────────────────────────────

    def get(self, lesson_plan_id: str) -> LessonPlan:
        return self.client.get_lesson_plan(lesson_plan_id)

    def create(self, data: LessonPlanInput) -> LessonPlan:
        validate_lesson_plan_input(data)
        plan = self.client.create_lesson_plan(data)
        logger.info(f"Lesson plan {plan.id} created for trainee {plan.trainee_id}")
        return plan

    def update(self, lesson_plan_id: str, data: LessonPlanInput) -> LessonPlan:
        validate_lesson_plan_input(data)
        return self.client.update_lesson_plan(lesson_plan_id, data)

    def delete(self, lesson_plan_id: str) -> str:
        message = self.client.delete_lesson_plan(lesson_plan_id)
        logger.info(f"Lesson plan {lesson_plan_id} deleted")
        return message

    # ─── AI drafting ───────────────────────────────────────────────────

    def generate_ai_draft(
        self, query: Optional[str], conversation_id: str = "", user_id: str = ""
    ) -> AIDraftResponse:
        """
        Ask the AI endpoint for a lesson plan and parse its markdown answer.

        When the model asks for more detail, the answer is returned unparsed
        with needs_more_detail set.
        """
        if query is None or not query.strip():
            raise ValidationFailedException("Please provide a lesson plan prompt.", field="query")

        answer = self.client.generate_ai_lesson_plan(query, conversation_id, user_id=user_id)
        conversation = answer.conversation_id or conversation_id

        if NEEDS_MORE_DETAIL_MARKER in answer.answer.lower():
            logger.info("AI lesson plan request needs more detail")
            return AIDraftResponse(
                answer=answer.answer,
                conversation_id=conversation,
                needs_more_detail=True,
            )

        return AIDraftResponse(
            answer=answer.answer,
            conversation_id=conversation,
            draft=parse_markdown_lesson_plan(answer.answer),
        )

    def save_ai_draft(self, request: AIDraftSaveRequest) -> SavedLessonPlanResponse:
        """Create a lesson plan from an edited AI draft, then render its PDF."""
        validate_draft_times(request.start_time, request.end_time)
        if not is_valid_date(request.date):
            raise ValidationFailedException("Please enter date in YYYY-MM-DD format.", field="date")

        data = LessonPlanInput(
            title=request.title or "Untitled",
            subject=request.subject or "Unknown",
            class_name=request.class_name or "Unknown",
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            objectives=request.objectives or "",
            activities=request.activities or "",
            resources=request.resources or "",
            ai_generated=True,
        )
        plan = self.client.create_lesson_plan(data)
        pdf_url = self.client.generate_lesson_plan_pdf(plan.id, data)
        logger.info(f"AI lesson plan {plan.id} saved with PDF {pdf_url}")
        return SavedLessonPlanResponse(
            message="AI lesson plan created and PDF generated",
            lesson_plan=plan,
            pdf_url=pdf_url,
        )
