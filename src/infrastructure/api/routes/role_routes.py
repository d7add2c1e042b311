from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.application.dtos.role_dto import CurrentRoleResponse, SetRoleRequest, SetRoleResponse
from src.domain.services.role_registry import RoleRegistry
from src.infrastructure.api.dependencies import get_current_user, get_optional_user, get_role_registry

router = APIRouter(
    prefix="/roles",
    tags=["Roles"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get(
    "/me",
    response_model=CurrentRoleResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Current User Role",
    description="""
    Return the caller's role. Identities without a stored role are reported as
    `user`. Requests without a bearer token get `authenticated: false` and a
    null role.

    **Authentication required**: Optional
    """,
    response_description="Role of the caller",
)
def get_current_role(
    user=Depends(get_optional_user),
    registry: RoleRegistry = Depends(get_role_registry),
):
    """Get the caller's role."""
    if user is None:
        return CurrentRoleResponse(authenticated=False, role=None)
    return CurrentRoleResponse(authenticated=True, role=registry.get_role(user.id))


@router.put(
    "/{user_id}",
    response_model=SetRoleResponse,
    status_code=status.HTTP_200_OK,
    summary="Set User Role",
    description="""
    Set the role of an identity.

    While no admin exists, any authenticated caller may set roles; this is how
    the first admin is created. Afterwards only admins may.

    **Authentication required**: Yes (Bearer token; admin once an admin exists)
    """,
    response_description="The stored role",
    responses={403: {"description": "Forbidden - Only admins can set user roles"}},
)
def set_user_role(
    user_id: str,
    body: SetRoleRequest,
    user=Depends(get_current_user),
    registry: RoleRegistry = Depends(get_role_registry),
):
    """Set a user's role."""
    assignment = registry.set_role(user.id, user_id, body.role)
    return SetRoleResponse(user_id=assignment.user_id, role=assignment.role)
