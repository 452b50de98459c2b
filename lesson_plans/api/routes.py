"""Lesson plan API endpoints - CRUD and AI drafting for trainees."""
import logging
import traceback
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import get_current_user, get_tpma_client, require_role
from auth.models.schemas import CurrentUser
from database import get_db
from lesson_plans.markdown_parser import parse_markdown_lesson_plan
from lesson_plans.services.lesson_plan_service import LessonPlanService
from shared.models.domain import LessonPlan, LessonPlanDraft, LessonPlanInput, Role
from shared.models.schemas import (
    AIDraftResponse,
    AIDraftSaveRequest,
    AIGenerateRequest,
    DeleteResponse,
    ParseMarkdownRequest,
    SavedLessonPlanResponse,
)
from shared.utils.exceptions import TPSupervisionException
from shared.utils.pagination import Page
from tpma.client import TPMAClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lesson-plans", tags=["lesson-plans"])

trainee_only = require_role(Role.TEACHER_TRAINEE.value)


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}\n{traceback.format_exc()}")
    return HTTPException(
        status_code=500,
        detail={"message": f"Error {action}: {str(e)}", "type": type(e).__name__},
    )


@router.get("", response_model=Page[LessonPlan])
def list_lesson_plans(
    trainee_id: Optional[str] = Query(None, alias="traineeId"),
    page: int = Query(1, ge=1),
    search: Optional[str] = None,
    subject: Optional[str] = None,
    status: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """List lesson plans. Trainees only ever see their own."""
    if user.has_role(Role.TEACHER_TRAINEE.value):
        if trainee_id and trainee_id != user.identifier:
            raise HTTPException(status_code=403, detail="You can only view your own lesson plans.")
        trainee_id = user.identifier
    try:
        service = LessonPlanService(db, client)
        return service.list_for_trainee(trainee_id, page, search, subject, status)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("listing lesson plans", e)


@router.post("", response_model=LessonPlan)
def create_lesson_plan(
    request: LessonPlanInput,
    user: CurrentUser = Depends(trainee_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Create a lesson plan. The TPMA API allows one pending plan per trainee."""
    try:
        return LessonPlanService(db, client).create(request)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("creating lesson plan", e)


@router.post("/parse", response_model=LessonPlanDraft)
def parse_markdown(request: ParseMarkdownRequest, user: CurrentUser = Depends(get_current_user)):
    """Extract lesson plan fields from AI markdown without saving anything."""
    return parse_markdown_lesson_plan(request.markdown)


@router.post("/ai/generate", response_model=AIDraftResponse)
def generate_ai_lesson_plan(
    request: AIGenerateRequest,
    user: CurrentUser = Depends(trainee_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        service = LessonPlanService(db, client)
        return service.generate_ai_draft(request.query, request.conversation_id, user_id=user.identifier)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("generating AI lesson plan", e)


@router.post("/ai/save", response_model=SavedLessonPlanResponse)
def save_ai_lesson_plan(
    request: AIDraftSaveRequest,
    user: CurrentUser = Depends(trainee_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    """Save an edited AI draft and generate its PDF."""
    try:
        return LessonPlanService(db, client).save_ai_draft(request)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("saving AI lesson plan", e)


@router.get("/{lesson_plan_id}", response_model=LessonPlan)
def get_lesson_plan(
    lesson_plan_id: str,
    user: CurrentUser = Depends(get_current_user),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        return LessonPlanService(db, client).get(lesson_plan_id)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("fetching lesson plan", e)


@router.put("/{lesson_plan_id}", response_model=LessonPlan)
def update_lesson_plan(
    lesson_plan_id: str,
    request: LessonPlanInput,
    user: CurrentUser = Depends(trainee_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        return LessonPlanService(db, client).update(lesson_plan_id, request)
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("updating lesson plan", e)


@router.delete("/{lesson_plan_id}", response_model=DeleteResponse)
def delete_lesson_plan(
    lesson_plan_id: str,
    user: CurrentUser = Depends(trainee_only),
    client: TPMAClient = Depends(get_tpma_client),
    db: DBSession = Depends(get_db),
):
    try:
        return DeleteResponse(message=LessonPlanService(db, client).delete(lesson_plan_id))
    except TPSupervisionException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _unexpected("deleting lesson plan", e)
