"""Credit Controllers."""

from __future__ import annotations

from typing import Annotated

import structlog
from litestar import Controller, Response, get, post
from litestar.di import Provide
from litestar.params import Dependency, Parameter
from litestar.status_codes import HTTP_200_OK, HTTP_429_TOO_MANY_REQUESTS

from expense_tracker.domain.accounts.schemas import AuthenticatedUser
from expense_tracker.domain.credits import urls
from expense_tracker.domain.credits.deps import provide_credit_ledger, provide_user_credit_service
from expense_tracker.domain.credits.schemas import (
    ConsumeCreditRequest,
    ConsumeCreditResponse,
    CreditsModel,
    CreditsResponse,
    CreditTransactionModel,
    CreditTransactionsResponse,
    InsufficientCreditsResponse,
)
from expense_tracker.domain.credits.services import UserCreditService
from expense_tracker.lib.credit_ledger import CreditLedger
from expense_tracker.lib.exceptions import InsufficientCreditsException

logger = structlog.get_logger()

__all__ = ("CreditController",)


class CreditController(Controller):
    """Daily credit balance and ledger."""

    tags = ["Credits"]

    dependencies = {
        "credit_service": Provide(provide_user_credit_service),
        "credit_ledger": Provide(provide_credit_ledger),
    }

    @get(path=urls.CREDITS_BASE, operation_id="get_credits")
    async def get_credits(
        self,
        current_user: AuthenticatedUser,
        credit_service: UserCreditService,
        credit_ledger: Annotated[CreditLedger, Dependency(skip_validation=True)],
    ) -> CreditsResponse:
        """Get the current credit snapshot, applying any due daily reset."""
        snapshot = await credit_ledger.get_snapshot(current_user.id, credit_service)
        return CreditsResponse(credits=CreditsModel.from_snapshot(snapshot))

    @post(path=urls.CREDITS_CONSUME, operation_id="consume_credit", status_code=HTTP_200_OK)
    async def consume_credit(
        self,
        current_user: AuthenticatedUser,
        data: ConsumeCreditRequest,
        credit_service: UserCreditService,
        credit_ledger: Annotated[CreditLedger, Dependency(skip_validation=True)],
    ) -> Response[ConsumeCreditResponse | InsufficientCreditsResponse]:
        """Consume one function call or message credit."""
        try:
            result = await credit_ledger.consume(
                current_user.id,
                data.type,
                credit_service,
                description=data.description,
            )
        except InsufficientCreditsException as e:
            return Response(
                InsufficientCreditsResponse(
                    error=e.detail,
                    credit_type=e.credit_type.value,
                    credits_remaining=e.remaining,
                ),
                status_code=HTTP_429_TOO_MANY_REQUESTS,
            )

        return Response(
            ConsumeCreditResponse(
                message=f"{result.credit_type.label} credit consumed",
                remaining=result.remaining,
                credits=CreditsModel.from_snapshot(result.snapshot),
            ),
            status_code=HTTP_200_OK,
        )

    @get(path=urls.CREDITS_TRANSACTIONS, operation_id="list_credit_transactions")
    async def list_transactions(
        self,
        current_user: AuthenticatedUser,
        credit_service: UserCreditService,
        credit_ledger: Annotated[CreditLedger, Dependency(skip_validation=True)],
        limit: Annotated[int | None, Parameter(
            query="limit", ge=1, le=200, description="Maximum number of transactions to return")] = None,
    ) -> CreditTransactionsResponse:
        """List the most recent credit transactions, newest first."""
        transactions = await credit_ledger.list_transactions(current_user.id, credit_service, limit=limit)
        return CreditTransactionsResponse(
            transactions=[CreditTransactionModel.model_validate(t) for t in transactions],
        )
