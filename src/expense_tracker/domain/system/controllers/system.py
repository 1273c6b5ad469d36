from __future__ import annotations

import structlog
from litestar import Controller, get
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.domain.system.schemas import SystemHealth

logger = structlog.get_logger()

__all__ = ("SystemController",)


class SystemController(Controller):
    tags = ["System"]

    @get(path="/health", operation_id="SystemHealth", exclude_from_auth=True)
    async def check_system_health(self, db_session: AsyncSession) -> Response[SystemHealth]:
        """Check database availability and return app info."""
        try:
            await db_session.execute(text("select 1"))
        except SQLAlchemyError as e:
            logger.warning("Database health check failed", error=str(e))
            return Response(SystemHealth(database_status="offline"), status_code=HTTP_503_SERVICE_UNAVAILABLE)
        return Response(SystemHealth(database_status="online"), status_code=HTTP_200_OK)
