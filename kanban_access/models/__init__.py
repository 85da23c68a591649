from kanban_access.core.roles import BoardRole
from kanban_access.models.user import User
from kanban_access.models.board import Board
from kanban_access.models.membership import BoardMembership
from kanban_access.models.column import BoardColumn
from kanban_access.models.card import Card, CardPriority
from kanban_access.models.invitation import Invitation, InvitationStatus
from kanban_access.models.audit_log import AuditLog, AuditAction, AuditSeverity, AuditCategory
