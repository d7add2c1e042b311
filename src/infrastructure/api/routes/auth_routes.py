from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.domain.entities.role import Role
from src.domain.services.role_registry import RoleRegistry
from src.infrastructure.api.dependencies import get_current_user, get_profile_repo, get_role_registry
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"}
    }
)


class ValidateTokenResponse(BaseModel):
    """Response model for token validation."""
    user_id: str = Field(..., description="Unique identifier of the authenticated user")
    email: str | None = Field(None, description="Email address of the authenticated user", example="admin@example.com")


@router.post(
    "/validate",
    response_model=ValidateTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate Authentication Token",
    description="""
    Validate the provided JWT token and ensure the user profile exists.

    This endpoint:
    - Verifies the JWT token in the Authorization header
    - Creates or updates the user profile used to display card assigners
    - Returns basic user information

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="User information confirming valid authentication"
)
def validate_token(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Validate JWT token and ensure user profile exists."""
    prof = profiles.upsert(user.id, user.email)
    return {"user_id": prof.id, "email": prof.email}


class UserProfileResponse(BaseModel):
    """Response model for user profile information."""
    id: str = Field(..., description="Unique identifier of the user")
    email: str | None = Field(None, description="Email address of the user", example="admin@example.com")
    name: str | None = Field(None, description="Display name of the user", example="Jane Admin")
    role: Role = Field(..., description="Role of the user", example="admin")
    created_at: datetime | None = Field(None, description="ISO timestamp when the user profile was created")


@router.get(
    "/me",
    response_model=UserProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Current User Profile",
    description="""
    Retrieve the profile and role of the currently authenticated user.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Complete user profile information"
)
def get_me(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
    registry: RoleRegistry = Depends(get_role_registry),
):
    """Get current user's profile information."""
    prof = profiles.upsert(user.id, user.email)
    return {
        "id": prof.id,
        "email": prof.email,
        "name": prof.display_name,
        "role": registry.get_role(user.id),
        "created_at": prof.created_at,
    }
