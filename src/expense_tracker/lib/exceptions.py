"""Application error taxonomy and HTTP translation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from advanced_alchemy.exceptions import (
    DuplicateKeyError,
    IntegrityError,
    NotFoundError,
    RepositoryError,
)
from litestar.response import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

if TYPE_CHECKING:
    from litestar import Request

    from expense_tracker.db.models import CreditTransactionType, Tag

__all__ = (
    "ApplicationClientError",
    "ApplicationError",
    "DuplicateTagError",
    "InsufficientCreditsException",
    "NotAuthenticatedError",
    "NotFoundOrForbiddenError",
    "StorageFailureError",
    "ToolArgumentError",
    "exception_to_http_response",
)

logger = structlog.get_logger()


class ApplicationError(Exception):
    """Base exception type for the app's custom exception types."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"

    def __init__(self, *args: Any, detail: str = "") -> None:
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()

    def extra(self) -> dict[str, Any]:
        """Additional fields surfaced alongside ``detail``."""
        return {}


class ApplicationClientError(ApplicationError):
    """Base exception type for client errors."""

    status_code = HTTP_400_BAD_REQUEST
    detail = "Bad request"


class NotAuthenticatedError(ApplicationClientError):
    """No identity could be resolved for the request."""

    status_code = HTTP_401_UNAUTHORIZED
    detail = "You are not logged in."


class ToolArgumentError(ApplicationClientError):
    """Arguments failed validation before touching storage."""

    detail = "Invalid arguments"


class NotFoundOrForbiddenError(ApplicationClientError):
    """The row does not exist or belongs to someone else.

    Both cases share one message so existence is not leaked across users.
    """

    status_code = HTTP_404_NOT_FOUND
    detail = "Not found or you do not have permission to access it"


class DuplicateTagError(ApplicationClientError):
    """A tag with the same name already exists for the user."""

    status_code = HTTP_409_CONFLICT
    detail = "Tag already exists"

    def __init__(self, tag: Tag) -> None:
        self.tag = tag
        super().__init__(detail=f'Tag "{tag.tag_name}" already exists')

    def extra(self) -> dict[str, Any]:
        return {"existingTag": {"id": self.tag.id, "name": self.tag.tag_name}}


class InsufficientCreditsException(ApplicationClientError):
    """Raised when a user's daily quota for a credit kind is exhausted."""

    status_code = HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        user_id: str,
        credit_type: CreditTransactionType,
        used: int,
        limit: int,
    ) -> None:
        self.user_id = user_id
        self.credit_type = credit_type
        self.used = used
        self.limit = limit
        super().__init__(
            detail=f"Insufficient {credit_type.label} credits. Daily limit reached.",
        )

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    def extra(self) -> dict[str, Any]:
        return {"creditsRemaining": self.remaining}


class StorageFailureError(ApplicationError):
    """Persistence failed; surfaced as a generic failure."""

    detail = "A storage error occurred"


def exception_to_http_response(
    request: Request[Any, Any, Any],
    exc: ApplicationError | RepositoryError,
) -> Response[dict[str, Any]]:
    """Transform repository and application exceptions into JSON responses.

    Args:
        request: The request that experienced the exception.
        exc: Exception raised during handling of the request.

    Returns:
        Exception response appropriate to the type of the raised exception.
    """
    if isinstance(exc, ApplicationError):
        status_code = exc.status_code
        detail = exc.detail
        extra = exc.extra()
    elif isinstance(exc, NotFoundError):
        status_code, detail, extra = HTTP_404_NOT_FOUND, NotFoundOrForbiddenError.detail, {}
    elif isinstance(exc, DuplicateKeyError | IntegrityError):
        status_code, detail, extra = HTTP_409_CONFLICT, str(exc.detail or exc), {}
    else:
        status_code, detail, extra = HTTP_500_INTERNAL_SERVER_ERROR, StorageFailureError.detail, {}

    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.exception("Request failed", path=request.url.path, error=str(exc))
    return Response(
        content={"success": False, "status_code": status_code, "detail": detail, **extra},
        status_code=status_code,
    )
