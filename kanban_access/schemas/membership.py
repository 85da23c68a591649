from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from kanban_access.core.roles import BoardRole


class MembershipResponse(BaseModel):
    """Schema for a board membership"""
    board_id: int
    user_id: str
    role: BoardRole
    created_at: datetime

    class Config:
        from_attributes = True


class MemberListItem(MembershipResponse):
    """Membership joined with the user's profile"""
    email: Optional[str] = None
    name: Optional[str] = None


class MemberListQuery(BaseModel):
    """Pagination and filters for the member list"""
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = None
    role: Optional[BoardRole] = None
    sort_by: Literal["name", "email", "role", "joined_at"] = "name"
    sort_order: Literal["asc", "desc"] = "asc"


class MemberPage(BaseModel):
    memberships: List[MemberListItem]
    total: int
    page: int
    limit: int
    total_pages: int
    role_distribution: Dict[str, int]
