from __future__ import annotations

from pydantic import BaseModel, Field

from src.domain.entities.role import Role


class SetRoleRequest(BaseModel):
    """Request model for setting an identity's role."""
    role: Role = Field(..., description="Role to assign", example="admin")


class SetRoleResponse(BaseModel):
    ok: bool = Field(True, description="Indicates the role was stored")
    user_id: str = Field(..., description="Identity whose role was set")
    role: Role = Field(..., description="Role now stored for the identity")


class CurrentRoleResponse(BaseModel):
    """Role of the caller; ``role`` is null when there is no session."""
    authenticated: bool = Field(..., description="Whether the request carried a valid session")
    role: Role | None = Field(None, description="Stored role, or 'user' when none is stored", example="user")
