import enum
from typing import Union


class BoardRole(str, enum.Enum):
    """Board role hierarchy: viewer < member < admin < owner"""

    VIEWER = "viewer"      # Только чтение
    MEMBER = "member"      # Работа с карточками
    ADMIN = "admin"        # Управление участниками и колонками
    OWNER = "owner"        # Владелец доски

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]


ROLE_LEVELS = {
    BoardRole.VIEWER: 1,
    BoardRole.MEMBER: 2,
    BoardRole.ADMIN: 3,
    BoardRole.OWNER: 4,
}

# Роли, которые можно выдать через приглашение
INVITABLE_ROLES = (BoardRole.ADMIN, BoardRole.MEMBER, BoardRole.VIEWER)


def parse_role(value: Union[BoardRole, str]) -> BoardRole:
    """Accept a BoardRole or its string value; raise ValueError otherwise"""
    if isinstance(value, BoardRole):
        return value
    try:
        return BoardRole(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown board role: {value!r}") from None


def compare_roles(a: BoardRole, b: BoardRole) -> int:
    """Return -1, 0 or 1 as role ``a`` is below, equal to or above role ``b``"""
    left, right = parse_role(a).level, parse_role(b).level
    return (left > right) - (left < right)


def role_at_least(have: BoardRole, need: BoardRole) -> bool:
    return compare_roles(have, need) >= 0
