"""Pre-write checks for membership changes.

These are pure functions: they look only at their arguments and raise on
failure, so a caller can report the problem before any write is attempted.
"""
from typing import Optional

from kanban_access.core.exceptions import (
    Forbidden,
    LastOwnerViolation,
    RoleAssignmentForbidden,
    SelfRoleChangeForbidden,
)
from kanban_access.core.roles import BoardRole, compare_roles, parse_role


def validate_self_role_change(
    acting_role: BoardRole,
    target_user_id: str,
    acting_user_id: str,
    new_role: Optional[BoardRole],
) -> None:
    """Users cannot modify their own role"""
    if target_user_id != acting_user_id or new_role is None:
        return
    if parse_role(new_role) != parse_role(acting_role):
        raise SelfRoleChangeForbidden()


def validate_role_assignment(acting_role: BoardRole, new_role: BoardRole) -> None:
    """Only a strictly higher role may grant a role; owner is never granted here"""
    acting_role, new_role = parse_role(acting_role), parse_role(new_role)

    if new_role == BoardRole.OWNER:
        raise RoleAssignmentForbidden("Ownership cannot be granted through a role change")
    if compare_roles(acting_role, new_role) <= 0:
        if new_role == BoardRole.ADMIN:
            raise RoleAssignmentForbidden("Only board owners can assign admin roles")
        raise RoleAssignmentForbidden(f"A {acting_role.value} cannot assign the {new_role.value} role")


def validate_owner_requirement(
    current_target_role: BoardRole,
    target_user_id: str,
    acting_user_id: str,
    new_role: Optional[BoardRole] = None,
    is_removal: bool = False,
) -> None:
    """An owner can be neither removed nor demoted; the owner floor is one"""
    if parse_role(current_target_role) != BoardRole.OWNER:
        return

    hint = " Transfer ownership first." if target_user_id == acting_user_id else ""
    if is_removal:
        raise LastOwnerViolation(f"Cannot remove the board owner.{hint}")
    if new_role is not None and parse_role(new_role) != BoardRole.OWNER:
        raise LastOwnerViolation(f"Cannot change owner role.{hint}")


def validate_target_rank(acting_role: BoardRole, target_role: BoardRole) -> None:
    """Admins can't change or remove other admins or the owner"""
    if compare_roles(acting_role, target_role) <= 0:
        raise Forbidden(
            f"A {parse_role(acting_role).value} cannot manage a {parse_role(target_role).value}"
        )
