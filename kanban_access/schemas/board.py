from datetime import datetime
from typing import List
from pydantic import BaseModel, Field

from kanban_access.core.roles import BoardRole
from kanban_access.schemas.column import ColumnResponse


class BoardBase(BaseModel):
    """Base schema for board data"""
    name: str = Field(..., min_length=1, max_length=100)


class BoardResponse(BoardBase):
    id: int
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BoardWithRole(BoardResponse):
    """Board as seen by one of its members"""
    role: BoardRole


class BoardCompleteResponse(BoardResponse):
    """Schema for complete board response with ordered columns"""
    columns: List[ColumnResponse] = []
