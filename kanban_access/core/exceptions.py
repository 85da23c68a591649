"""Error taxonomy for board access control and ordering.

Policy errors (everything deriving from ``BoardAccessError`` except the
infrastructure ones at the bottom) are surfaced to the caller verbatim.
"""
from typing import Optional


class BoardAccessError(Exception):
    """Base class for every error raised by the access-control core."""

    kind = "Error"
    default_detail = "Board access error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(BoardAccessError):
    """The user has no membership on the board at all."""

    kind = "Unauthorized"
    default_detail = "You don't have access to this board"


class Forbidden(BoardAccessError):
    """The user is a member but the role is insufficient."""

    kind = "Forbidden"
    default_detail = "Operation not allowed with your role"


class RoleAssignmentForbidden(Forbidden):
    default_detail = "You cannot assign this role"


class NotFound(BoardAccessError):
    kind = "NotFound"
    default_detail = "Not found"


class Conflict(BoardAccessError):
    """The write would violate a uniqueness invariant."""

    kind = "Conflict"
    default_detail = "Conflict"


class MembershipConflict(Conflict):
    default_detail = "User is already a member of this board"


class AlreadyMember(Conflict):
    default_detail = "User is already a member of this board"


class DuplicatePendingInvitation(Conflict):
    default_detail = "User already has a pending invitation"


class LastOwnerViolation(BoardAccessError):
    kind = "LastOwnerViolation"
    default_detail = "A board must keep at least one owner"


class SelfRemovalForbidden(BoardAccessError):
    kind = "SelfRemovalForbidden"
    default_detail = "You cannot remove yourself from the board"


class SelfRoleChangeForbidden(BoardAccessError):
    kind = "SelfRoleChangeForbidden"
    default_detail = "You cannot modify your own role"


class InvalidToken(BoardAccessError):
    kind = "InvalidToken"
    default_detail = "Invitation not found"


class InvitationExpired(BoardAccessError):
    kind = "Expired"
    default_detail = "Invitation has expired"


class AlreadyAccepted(BoardAccessError):
    kind = "AlreadyAccepted"
    default_detail = "Invitation has already been accepted"


class NonEmptyColumn(BoardAccessError):
    kind = "NonEmptyColumn"
    default_detail = "Cannot delete a column that still contains cards"


class CrossGroupViolation(BoardAccessError):
    kind = "CrossGroupViolation"
    default_detail = "All entities must belong to the same board"


# Infrastructure failures: logged and reported as a generic internal error.

class StoreError(BoardAccessError):
    kind = "InternalError"
    default_detail = "Internal server error"


class NotificationDeliveryError(BoardAccessError):
    kind = "InternalError"
    default_detail = "Failed to send invitation email"
