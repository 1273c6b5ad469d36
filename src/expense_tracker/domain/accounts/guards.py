from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar.security.jwt import JWTAuth

from expense_tracker.config import get_settings
from expense_tracker.domain.accounts.schemas import AuthenticatedUser

if TYPE_CHECKING:
    from litestar.connection import ASGIConnection
    from litestar.security.jwt import Token

__all__ = ("auth", "current_user_from_token")

settings = get_settings()


async def current_user_from_token(token: Token, connection: ASGIConnection[Any, Any, Any, Any]) -> AuthenticatedUser | None:
    """Lookup the user from the token subject.

    Users are owned by the external identity provider, so the subject is the
    whole identity.

    Args:
        token (str): JWT Token Object
        connection (ASGIConnection[Any, Any, Any, Any]): ASGI connection.

    Returns:
        AuthenticatedUser | None: The user, or None for an empty subject.
    """
    if not token.sub:
        return None
    return AuthenticatedUser(id=token.sub)


auth = JWTAuth[AuthenticatedUser](
    retrieve_user_handler=current_user_from_token,
    token_secret=settings.app.SECRET_KEY,
    algorithm=settings.app.JWT_ALGORITHM,
    exclude=["/health", "^/schema"],
)
