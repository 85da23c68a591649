# Import all models here so create_all() sees them
from kanban_access.db.base import Base
from kanban_access.models import (
    User,
    Board,
    BoardMembership,
    BoardColumn,
    Card,
    Invitation,
    AuditLog,
)
