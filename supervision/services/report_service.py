"""
Supervisor activity report.

Everything is computed per request from the supervisor profile and the
feedback history returned by the TPMA API. PDF rendering stays remote.
"""
import csv
import io
import logging
from typing import Dict, List, Optional, Sequence

from shared.models.domain import (
    Feedback,
    LessonPlanStatus,
    ScheduleStatus,
    SupervisorProfile,
)
from shared.models.schemas import (
    LessonPlanSummaryRow,
    ReportMetrics,
    SupervisorReport,
    TraineeBreakdown,
)
from shared.utils.exceptions import ValidationFailedException
from shared.utils.time_utils import is_valid_date
from supervision.normalization import UNKNOWN_TRAINEE
from tpma.client import TPMAClient

logger = logging.getLogger(__name__)

# Upper bound on feedback pages pulled for one report
MAX_FEEDBACK_PAGES = 50


def _in_range(date: str, start_date: Optional[str], end_date: Optional[str]) -> bool:
    # YYYY-MM-DD strings order the same way as the dates they name
    if start_date and (not date or date < start_date):
        return False
    if end_date and (not date or date > end_date):
        return False
    return True


def build_supervisor_report(
    profile: SupervisorProfile,
    feedback_sent: Sequence[Feedback],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    search: Optional[str] = None,
) -> SupervisorReport:
    """
    Summarise a supervisor's activity.

    Lesson plans and schedules are limited to the optional date range. The
    search term narrows trainees by name or registration number and lesson
    plans by title or trainee name.
    """
    needle = (search or "").strip().lower()

    plans = [p for p in profile.lesson_plans if _in_range(p.date, start_date, end_date)]
    schedules = [s for s in profile.schedules if _in_range(s.date, start_date, end_date)]
    feedback = [f for f in feedback_sent if _in_range((f.created_at or "")[:10], start_date, end_date)]

    trainees: Dict[str, TraineeBreakdown] = {}
    for trainee in profile.assigned_trainees:
        trainees[trainee.id] = TraineeBreakdown(
            trainee_id=trainee.id, name=trainee.full_name or trainee.id
        )
    for plan in plans:
        if plan.trainee_id not in trainees:
            trainees[plan.trainee_id] = TraineeBreakdown(
                trainee_id=plan.trainee_id, name=plan.trainee_name or UNKNOWN_TRAINEE
            )

    for plan in plans:
        row = trainees[plan.trainee_id]
        row.lesson_plans_submitted += 1
        if plan.status == LessonPlanStatus.APPROVED:
            row.lesson_plans_approved += 1
    for schedule in schedules:
        if schedule.trainee_id in trainees:
            trainees[schedule.trainee_id].observations += 1
    for item in feedback:
        if item.trainee_id in trainees:
            trainees[item.trainee_id].feedback_received += 1

    reg_numbers = {t.id: (t.reg_no or "").lower() for t in profile.assigned_trainees}
    breakdown = [
        row for row in trainees.values()
        if not needle
        or needle in row.name.lower()
        or needle in reg_numbers.get(row.trainee_id, "")
    ]
    visible_trainees = {row.trainee_id for row in breakdown}

    summary_rows: List[LessonPlanSummaryRow] = []
    for plan in plans:
        trainee_name = plan.trainee_name or trainees[plan.trainee_id].name
        if needle and plan.trainee_id not in visible_trainees and needle not in (plan.title or "").lower():
            continue
        summary_rows.append(LessonPlanSummaryRow(
            id=plan.id,
            title=plan.title,
            trainee_name=trainee_name,
            subject=plan.subject,
            date=plan.date,
            status=plan.status.value,
        ))

    metrics = ReportMetrics(
        trainees_supervised=len(breakdown),
        lesson_plans_reviewed=sum(
            1 for p in plans
            if p.trainee_id in visible_trainees
            and p.status in (LessonPlanStatus.APPROVED, LessonPlanStatus.REJECTED)
        ),
        observations_conducted=sum(
            1 for s in schedules
            if s.trainee_id in visible_trainees and s.status == ScheduleStatus.COMPLETED
        ),
        feedback_sent=sum(1 for f in feedback if f.trainee_id in visible_trainees),
    )

    return SupervisorReport(
        supervisor_id=profile.id,
        supervisor_name=f"{profile.name} {profile.surname}".strip() or profile.id,
        start_date=start_date,
        end_date=end_date,
        metrics=metrics,
        trainees=sorted(breakdown, key=lambda row: row.name.lower()),
        lesson_plans=sorted(summary_rows, key=lambda row: (row.date, row.title)),
    )


def export_report_csv(report: SupervisorReport) -> str:
    """Render a report as CSV: metrics, then trainees, then lesson plans."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["Supervisor", report.supervisor_name])
    writer.writerow(["Period", report.start_date or "", report.end_date or ""])
    writer.writerow([])
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Trainees supervised", report.metrics.trainees_supervised])
    writer.writerow(["Lesson plans reviewed", report.metrics.lesson_plans_reviewed])
    writer.writerow(["Observations conducted", report.metrics.observations_conducted])
    writer.writerow(["Feedback sent", report.metrics.feedback_sent])
    writer.writerow([])

    writer.writerow([
        "Trainee ID", "Name", "Lesson plans submitted", "Lesson plans approved",
        "Observations", "Feedback received",
    ])
    for row in report.trainees:
        writer.writerow([
            row.trainee_id, row.name, row.lesson_plans_submitted,
            row.lesson_plans_approved, row.observations, row.feedback_received,
        ])
    writer.writerow([])

    writer.writerow(["Lesson plan ID", "Title", "Trainee", "Subject", "Date", "Status"])
    for plan in report.lesson_plans:
        writer.writerow([plan.id, plan.title, plan.trainee_name, plan.subject, plan.date, plan.status])

    return buffer.getvalue()


class ReportService:
    """Fetches what a report needs from the TPMA API and builds it."""

    def __init__(self, client: TPMAClient):
        self.client = client

    def build(
        self,
        supervisor_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        search: Optional[str] = None,
    ) -> SupervisorReport:
        for field, value in (("startDate", start_date), ("endDate", end_date)):
            if value and not is_valid_date(value):
                raise ValidationFailedException("Please enter date in YYYY-MM-DD format.", field=field)
        if start_date and end_date and start_date > end_date:
            raise ValidationFailedException("Start date must not be after end date.", field="endDate")

        profile = self.client.get_supervisor_profile(supervisor_id)
        feedback = self._all_feedback(supervisor_id)
        return build_supervisor_report(profile, feedback, start_date, end_date, search)

    def generate_pdf(self, supervisor_id: str) -> str:
        return self.client.generate_supervisor_report(supervisor_id)

    def _all_feedback(self, supervisor_id: str) -> List[Feedback]:
        items: List[Feedback] = []
        page = 1
        while True:
            result = self.client.get_observation_feedback(supervisor_id, page=page)
            items.extend(result.items)
            if page >= result.total_pages:
                break
            if page >= MAX_FEEDBACK_PAGES:
                logger.warning(
                    f"Feedback for supervisor {supervisor_id} truncated at {MAX_FEEDBACK_PAGES} pages"
                )
                break
            page += 1
        return items
