from typing import Optional

from fastapi import Request

from kanban_access.schemas.authorization import RequestMeta


def get_client_ip(request: Request) -> Optional[str]:
    """Requester IP, honouring the usual proxy headers"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # Первый адрес в цепочке - исходный клиент
        return forwarded_for.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    return request.client.host if request.client else None


async def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=get_client_ip(request) or "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    )
