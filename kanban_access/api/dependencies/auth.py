from fastapi import HTTPException, Request, status


# Dependency to get the current user id
async def get_current_user_id(request: Request) -> str:
    """
    Get the id of the user verified by the identity provider

    The identity-provider integration stores the verified id in
    ``request.state.user_id`` before the request reaches the routes.

    Raises:
        HTTPException: If no verified user is attached to the request
    """
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return str(user_id)
