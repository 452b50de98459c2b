"""Auth API endpoints."""

from fastapi import APIRouter, Depends

from auth.middleware.auth_middleware import get_current_user, get_tpma_client
from auth.models.schemas import CurrentUser, LoginRequest, MeResponse
from tpma.client import TPMAClient
from tpma.exceptions import TPMAError
from tpma.models import LoginResult

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
def read_me(current_user: CurrentUser = Depends(get_current_user)):
    """Return the identity behind the caller's token."""
    return MeResponse(role=current_user.role, identifier=current_user.identifier)


@router.post("/login", response_model=LoginResult)
def login(body: LoginRequest, client: TPMAClient = Depends(get_tpma_client)):
    """Exchange credentials for a TPMA token."""
    try:
        return client.login(body.user_type, body.identifier, body.password)
    except TPMAError as e:
        raise e.to_http_exception()
