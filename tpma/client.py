"""
TPMA Client - typed wrapper around the Teaching Practice Management REST API.

Reads (verify, profile, list, get) retry with exponential backoff on transport
errors, timeouts, 429 and 5xx responses. Writes are sent exactly once and any
failure is surfaced to the caller unchanged.
"""

import json
import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import Settings, get_settings
from shared.models.domain import (
    Feedback,
    LessonPlan,
    LessonPlanInput,
    ObservationSchedule,
    ReviewDecision,
    ScheduleRequest,
    ScheduleStatus,
    SupervisorProfile,
    VerifiedIdentity,
)
from shared.utils.pagination import Page
from tpma.error_messages import friendly_message
from tpma.exceptions import (
    TPMAAuthenticationError,
    TPMAConnectionError,
    TPMAError,
    TPMANotFoundError,
    TPMAResponseFormatError,
    error_for_status,
)
from tpma.models import (
    AIAnswer,
    FeedbackListing,
    LessonPlanListing,
    LoginResult,
    ReviewResult,
    ScheduleListing,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class TPMAClient:
    """
    Client for the TPMA REST API.

    One instance belongs to one inbound request: it carries that caller's
    bearer token and is closed when the request finishes.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 60.0,
        max_read_attempts: int = 3,
        initial_retry_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.token = token
        self.max_read_attempts = max(1, max_read_attempts)
        self.initial_retry_delay = initial_retry_delay

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        token: Optional[str],
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "TPMAClient":
        settings = settings or get_settings()
        return cls(
            settings.tpma_api_base_url,
            token,
            timeout=settings.tpma_request_timeout,
            max_read_attempts=settings.tpma_max_read_attempts,
            initial_retry_delay=settings.tpma_initial_retry_delay,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TPMAClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ─── Transport ─────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry: bool = False,
        authenticated: bool = True,
    ) -> Any:
        """Send one request, retrying reads with exponential backoff."""
        if authenticated and not self.token:
            raise TPMAAuthenticationError("No token found", 401, endpoint=path)

        query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        attempts = self.max_read_attempts if retry else 1
        delay = self.initial_retry_delay
        start_time = time.time()
        last_error: Optional[TPMAError] = None
        last_cause: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                response = self._http.request(method, path, json=json_body, params=query or None)
            except httpx.TimeoutException as e:
                last_cause = e
                last_error = TPMAConnectionError(
                    friendly_message("Network Error"), endpoint=path, attempts=attempt + 1
                )
                logger.warning(f"TPMA {method} {path} timed out (attempt {attempt + 1}/{attempts})")
            except httpx.TransportError as e:
                last_cause = e
                last_error = TPMAConnectionError(
                    friendly_message("Network Error"), endpoint=path, attempts=attempt + 1
                )
                logger.warning(
                    f"TPMA {method} {path} transport error (attempt {attempt + 1}/{attempts}): {e}"
                )
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                # Decoding, redirect and URL errors are not retried
                last_cause = e
                last_error = TPMAConnectionError(
                    friendly_message("Network Error"), endpoint=path, attempts=attempt + 1
                )
                logger.error(f"TPMA {method} {path} failed: {type(e).__name__}: {e}")
                break
            else:
                if response.is_success:
                    logger.info(json.dumps({
                        "step": "TPMA_REQUEST",
                        "status": "complete",
                        "method": method,
                        "endpoint": path,
                        "http_status": response.status_code,
                        "duration_ms": int((time.time() - start_time) * 1000),
                        "attempts": attempt + 1,
                    }))
                    return self._decode(response, path)

                last_cause = None
                last_error = error_for_status(
                    response.status_code,
                    self._error_message(response),
                    endpoint=path,
                    attempts=attempt + 1,
                )
                if not _is_retryable_status(response.status_code):
                    break
                logger.warning(
                    f"TPMA {method} {path} returned {response.status_code} "
                    f"(attempt {attempt + 1}/{attempts})"
                )

            if attempt + 1 < attempts:
                logger.info(f"Retrying TPMA {method} {path} in {delay}s...")
                time.sleep(delay)
                delay *= 2

        logger.info(json.dumps({
            "step": "TPMA_REQUEST",
            "status": "failed",
            "method": method,
            "endpoint": path,
            "error": str(last_error),
            "duration_ms": int((time.time() - start_time) * 1000),
            "attempts": last_error.attempts,
        }))
        raise last_error from last_cause

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TPMAResponseFormatError(endpoint=path, details=[str(e)]) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        fallback = f"Request failed with status code {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return friendly_message(response.text.strip() or None, fallback=fallback)
        if isinstance(body, dict):
            return friendly_message(body.get("error") or body.get("message"), fallback=fallback)
        return fallback

    @staticmethod
    def _parse(model: Type[M], data: Any, path: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"TPMA response from {path} failed validation: {e.error_count()} errors")
            raise TPMAResponseFormatError(
                endpoint=path, details=[err["msg"] for err in e.errors()]
            ) from e

    @staticmethod
    def _field(data: Any, key: str, path: str) -> Any:
        if not isinstance(data, dict) or key not in data:
            raise TPMAResponseFormatError(endpoint=path, details=[f"missing '{key}'"])
        return data[key]

    # ─── Authentication ────────────────────────────────────────────────

    def verify_token(self) -> VerifiedIdentity:
        path = "/api/verify"
        return self._parse(VerifiedIdentity, self._request("GET", path, retry=True), path)

    def login(self, user_type: str, identifier: str, password: str) -> LoginResult:
        path = "/api/login"
        data = self._request(
            "POST",
            path,
            json_body={"userType": user_type, "identifier": identifier, "password": password},
            authenticated=False,
        )
        return self._parse(LoginResult, data, path)

    # ─── Supervisor workflow ───────────────────────────────────────────

    def get_supervisor_profile(self, supervisor_id: str) -> SupervisorProfile:
        path = f"/api/getsupervisors/{supervisor_id}"
        return self._parse(SupervisorProfile, self._request("GET", path, retry=True), path)

    def get_supervisor_schedules(
        self, supervisor_id: str, page: int = 1, status: Optional[str] = None
    ) -> Page[ObservationSchedule]:
        path = f"/api/supervisors/{supervisor_id}/schedules"
        try:
            data = self._request("GET", path, params={"page": page, "status": status}, retry=True)
        except TPMANotFoundError:
            return Page(items=[], total_count=0, total_pages=1, current_page=1)
        listing = self._parse(ScheduleListing, data, path)
        return Page(
            items=listing.schedules,
            total_count=listing.total_count,
            total_pages=listing.total_pages,
            current_page=listing.current_page or page,
        )

    def review_lesson_plan(
        self, supervisor_id: str, lesson_plan_id: str, decision: ReviewDecision
    ) -> ReviewResult:
        path = f"/api/supervisors/{supervisor_id}/lesson-plans/{lesson_plan_id}/review"
        body = {"status": decision.status.value, "comments": decision.comments}
        if decision.score is not None:
            body["score"] = decision.score
        return self._parse(ReviewResult, self._request("PUT", path, json_body=body), path)

    def schedule_observation(self, supervisor_id: str, request: ScheduleRequest) -> ObservationSchedule:
        path = f"/api/supervisors/{supervisor_id}/schedule-observation"
        data = self._request("POST", path, json_body=request.model_dump())
        return self._parse(ObservationSchedule, self._field(data, "schedule", path), path)

    def update_observation_status(
        self, supervisor_id: str, observation_id: str, status: ScheduleStatus
    ) -> ObservationSchedule:
        path = f"/api/supervisors/{supervisor_id}/observations/{observation_id}/status"
        data = self._request("PUT", path, json_body={"status": ScheduleStatus(status).value})
        return self._parse(ObservationSchedule, self._field(data, "schedule", path), path)

    def submit_observation_feedback(
        self, supervisor_id: str, observation_id: str, payload: Dict[str, Any]
    ) -> Optional[Feedback]:
        """Submit observation feedback. Returns the stored feedback when the API echoes it."""
        path = f"/api/supervisors/{supervisor_id}/observations/{observation_id}/feedback"
        data = self._request("POST", path, json_body=payload)
        if isinstance(data, dict) and data.get("feedback"):
            return self._parse(Feedback, data["feedback"], path)
        return None

    def get_observation_feedback(
        self,
        user_id: str,
        page: int = 1,
        lesson_plan_id: Optional[str] = None,
        search: Optional[str] = None,
        role: str = "supervisor",
        limit: Optional[int] = None,
    ) -> Page[Feedback]:
        path = "/api/feedback"
        params = {
            "userId": user_id,
            "role": role,
            "page": page,
            "lessonPlanId": lesson_plan_id,
            "search": search,
            "limit": limit,
        }
        try:
            data = self._request("GET", path, params=params, retry=True)
        except TPMANotFoundError:
            return Page(items=[], total_count=0, total_pages=1, current_page=1)
        listing = self._parse(FeedbackListing, data, path)
        return Page(
            items=listing.feedback,
            total_count=listing.total_count,
            total_pages=listing.total_pages,
            current_page=listing.current_page or page,
        )

    def generate_supervisor_report(self, supervisor_id: str) -> str:
        """Ask the API to render the supervisor report PDF; returns its URL."""
        path = f"/api/supervisors/{supervisor_id}/report"
        data = self._request("GET", path)
        return self._pdf_url(data, path)

    # ─── Lesson plans ──────────────────────────────────────────────────

    def get_lesson_plans(
        self,
        trainee_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        subject: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Page[LessonPlan]:
        path = "/api/lesson-plans"
        params = {
            "traineeId": trainee_id,
            "page": page,
            "limit": limit,
            "search": search,
            "subject": subject,
            "status": status,
        }
        try:
            data = self._request("GET", path, params=params, retry=True)
        except TPMANotFoundError:
            return Page(items=[], total_count=0, total_pages=1, current_page=1)
        listing = self._parse(LessonPlanListing, data, path)
        return Page(
            items=listing.lesson_plans,
            total_count=listing.total_count,
            total_pages=listing.total_pages,
            current_page=listing.current_page or page,
        )

    def get_lesson_plan(self, lesson_plan_id: str) -> LessonPlan:
        path = f"/api/lesson-plans/{lesson_plan_id}"
        return self._parse(LessonPlan, self._request("GET", path, retry=True), path)

    def create_lesson_plan(self, data: LessonPlanInput) -> LessonPlan:
        path = "/api/lesson-plans"
        response = self._request("POST", path, json_body=data.to_wire())
        return self._parse(LessonPlan, self._field(response, "lessonPlan", path), path)

    def update_lesson_plan(self, lesson_plan_id: str, data: LessonPlanInput) -> LessonPlan:
        path = f"/api/lesson-plans/{lesson_plan_id}"
        response = self._request("PUT", path, json_body=data.to_wire())
        return self._parse(LessonPlan, self._field(response, "lessonPlan", path), path)

    def delete_lesson_plan(self, lesson_plan_id: str) -> str:
        path = f"/api/lesson-plans/{lesson_plan_id}"
        response = self._request("DELETE", path)
        return str(self._field(response, "message", path))

    def generate_lesson_plan_pdf(self, lesson_plan_id: str, data: LessonPlanInput) -> str:
        path = "/api/lesson-plans/generate-pdf"
        body = {"lesson_plan_id": lesson_plan_id, **data.to_wire()}
        return self._pdf_url(self._request("POST", path, json_body=body), path)

    def generate_ai_lesson_plan(
        self, query: str, conversation_id: str = "", user_id: str = ""
    ) -> AIAnswer:
        path = "/api/ai-lesson-plan"
        body = {"query": query, "user_id": user_id, "conversation_id": conversation_id}
        return self._parse(AIAnswer, self._request("POST", path, json_body=body), path)

    def _pdf_url(self, data: Any, path: str) -> str:
        url = self._field(data, "pdfUrl", path)
        if not isinstance(url, str) or not url:
            raise TPMAResponseFormatError(endpoint=path, details=["PDF URL is required"])
        return url
