from pydantic import BaseModel

from kanban_access.core.roles import BoardRole


class AuthorizedContext(BaseModel):
    """Result of a successful authorization check.

    Issued only by ``AuthorizationGuard.require_role``; every board mutator
    takes one, so the acting user and board always come from the guard.
    """
    user_id: str
    board_id: int
    role: BoardRole

    class Config:
        frozen = True


class RequestMeta(BaseModel):
    """Best-effort requester details recorded with audit entries"""
    ip_address: str = "unknown"
    user_agent: str = "unknown"

    class Config:
        frozen = True
