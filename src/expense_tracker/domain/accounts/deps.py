"""User Account dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from expense_tracker.lib.exceptions import NotAuthenticatedError

if TYPE_CHECKING:
    from litestar import Request

    from expense_tracker.domain.accounts.schemas import AuthenticatedUser


async def provide_user(request: Request[AuthenticatedUser, Any, Any]) -> AuthenticatedUser:
    """Get the user from the request.

    Args:
        request: current Request.

    Returns:
        AuthenticatedUser

    Raises:
        NotAuthenticatedError: If the request carries no identity.
    """
    user = request.scope.get("user")
    if user is None or not getattr(user, "id", None):
        raise NotAuthenticatedError
    return user
