from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from kanban_access.models.card import CardPriority


def _strip_timezone(value):
    if isinstance(value, str) and value:
        # Заменяем 'Z' на '+00:00' для правильной обработки UTC
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if isinstance(value, datetime) and value.tzinfo is not None:
        # В БД хранится UTC без часового пояса
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CardBase(BaseModel):
    """Base schema for card data"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: CardPriority = CardPriority.MEDIUM

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, value):
        return _strip_timezone(value)


class CardCreate(CardBase):
    """Schema for card creation; without a position the card goes last"""
    column_id: int
    position: Optional[int] = None


class CardResponse(CardBase):
    id: int
    board_id: int
    column_id: int
    position: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CardPositionUpdate(BaseModel):
    """One entry of a bulk card update"""
    id: int
    column_id: int = Field(..., gt=0)
    position: int = Field(..., ge=1)


class BulkReorderResult(BaseModel):
    """Per-entity outcome of a bulk reorder; failed writes are retried by the caller"""
    updated: List[int] = []
    failed: List[int] = []
