# pylint: disable=[invalid-name,import-outside-toplevel]
from __future__ import annotations

from typing import TYPE_CHECKING

from litestar.di import Provide
from litestar.openapi.config import OpenAPIConfig
from litestar.openapi.plugins import ScalarRenderPlugin
from litestar.plugins import InitPluginProtocol

if TYPE_CHECKING:
    from litestar.config.app import AppConfig


class ApplicationCore(InitPluginProtocol):
    """Application core configuration plugin.

    This class is responsible for configuring the main Litestar application with our routes, guards, and various plugins

    """

    __slots__ = "app_slug"
    app_slug: str

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Configure application for use with SQLAlchemy.

        Args:
            app_config: The :class:`AppConfig <litestar.config.app.AppConfig>` instance.
        """

        from advanced_alchemy.exceptions import RepositoryError
        from litestar.security.jwt import Token

        from expense_tracker.__about__ import __version__ as current_version
        from expense_tracker.config import get_settings
        from expense_tracker.config import app as config
        from expense_tracker.db import models as m
        from expense_tracker.domain.accounts.deps import provide_user
        from expense_tracker.domain.accounts.guards import auth as jwt_auth
        from expense_tracker.domain.accounts.schemas import AuthenticatedUser
        from expense_tracker.domain.assistant.controllers import AssistantController
        from expense_tracker.domain.assistant.services import ChatThreadService, ExpenseAgentService
        from expense_tracker.domain.credits.controllers import CreditController
        from expense_tracker.domain.credits.services import UserCreditService
        from expense_tracker.domain.expenses.controllers import ExpenseController, TagController
        from expense_tracker.domain.expenses.services import ExpenseService, TagService
        from expense_tracker.domain.system.controllers import SystemController
        from expense_tracker.lib.credit_ledger import CreditLedger
        from expense_tracker.lib.exceptions import ApplicationError, exception_to_http_response
        from expense_tracker.server import plugins

        settings = get_settings()
        self.app_slug = settings.app.slug
        app_config.debug = settings.app.DEBUG
        # openapi
        app_config.openapi_config = OpenAPIConfig(
            title=settings.app.NAME,
            version=current_version,
            components=[jwt_auth.openapi_components],
            security=[jwt_auth.security_requirement],
            use_handler_docstrings=True,
            render_plugins=[ScalarRenderPlugin(version="latest")],
        )
        # jwt auth (updates openapi config)
        app_config = jwt_auth.on_app_init(app_config)
        # security
        app_config.cors_config = config.cors
        # plugins
        app_config.plugins.extend(
            [
                plugins.structlog,
                plugins.granian,
                plugins.alchemy,
                plugins.pydantic,
            ],
        )

        # routes
        app_config.route_handlers.extend(
            [
                SystemController,
                CreditController,
                ExpenseController,
                TagController,
                AssistantController,
            ],
        )
        # signatures
        app_config.signature_namespace.update(
            {
                "Token": Token,
                "m": m,
                "AuthenticatedUser": AuthenticatedUser,
                "UserCreditService": UserCreditService,
                "CreditLedger": CreditLedger,
                "ExpenseService": ExpenseService,
                "TagService": TagService,
                "ExpenseAgentService": ExpenseAgentService,
                "ChatThreadService": ChatThreadService,
            },
        )
        # exception handling
        app_config.exception_handlers = {
            ApplicationError: exception_to_http_response,
            RepositoryError: exception_to_http_response,
        }
        # dependencies
        dependencies = {"current_user": Provide(provide_user)}
        app_config.dependencies.update(dependencies)
        return app_config
