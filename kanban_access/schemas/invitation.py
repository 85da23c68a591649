from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, field_validator

from kanban_access.core.roles import BoardRole, INVITABLE_ROLES
from kanban_access.models.invitation import InvitationStatus


class InviteUserRequest(BaseModel):
    """Schema for inviting a user to a board"""
    email: EmailStr
    role: BoardRole = BoardRole.MEMBER

    @field_validator('role')
    @classmethod
    def role_is_invitable(cls, value):
        if value not in INVITABLE_ROLES:
            raise ValueError("Invitations can grant admin, member or viewer only")
        return value


class InvitationResponse(BaseModel):
    id: int
    board_id: int
    email: str
    role: BoardRole
    status: InvitationStatus
    invited_by: str
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationSummary(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    expired: int = 0


class InvitationList(BaseModel):
    invitations: List[InvitationResponse]
    summary: InvitationSummary


class BulkInviteOutcome(BaseModel):
    """Result of one entry of a bulk invitation"""
    email: str
    success: bool
    invitation_id: Optional[int] = None
    error: Optional[str] = None
