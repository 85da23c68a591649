from datetime import datetime
from pydantic import BaseModel, Field


class ColumnBase(BaseModel):
    """Base schema for column data"""
    title: str = Field(..., min_length=1, max_length=100)


class ColumnResponse(ColumnBase):
    id: int
    board_id: int
    position: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ColumnPositionUpdate(BaseModel):
    """One entry of a bulk column reorder"""
    id: int
    position: int = Field(..., ge=1)
