"""Pydantic request/response models for auth endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class CurrentUser(BaseModel):
    """Identity of the caller, as verified by the TPMA API."""
    role: str
    identifier: str
    token: str = Field(repr=False, exclude=True)

    def has_role(self, *roles: str) -> bool:
        return self.role.lower() in {role.lower() for role in roles}


class MeResponse(BaseModel):
    """Response model for /auth/me."""
    role: str
    identifier: str


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_type: str = Field(alias="userType")
    identifier: str
    password: str
