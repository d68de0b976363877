"""Billing REST API guarded by the age-gated ``billing:*`` actions.

The payment gateway is an external adapter published as
``app.state.payment_gateway``. Each handler authorizes first and only then
touches the gateway, so a denied principal never reaches it.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID  # noqa: TC003 -- pydantic needs UUID at runtime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from kinship.foundation.domain.capabilities import ADULT_AGE, Action
from kinship.foundation.domain.ports import PaymentGatewayPort
from kinship.foundation.domain.principal import Principal
from kinship.infra.auth.dependencies import TargetTenantId, require_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


class BillingOverviewResponse(BaseModel):
    tenant_id: UUID
    payments_enabled: bool
    minimum_age: int


class CreatePaymentRequest(BaseModel):
    amount_cents: int = Field(gt=0, le=10_000_000)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    description: str = Field(min_length=1, max_length=255)


class PaymentResponse(BaseModel):
    payment_reference: str
    amount_cents: int
    currency: str


def get_payment_gateway(request: Request) -> PaymentGatewayPort:
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        raise HTTPException(status_code=503, detail="Payment gateway not configured")
    return gateway  # type: ignore[no-any-return]


@router.get("")
def billing_overview(
    request: Request,
    _principal: Annotated[Principal, Depends(require_action(Action.BILLING_READ))],
    tenant_id: TargetTenantId,
) -> BillingOverviewResponse:
    """Billing status of the family in scope."""
    return BillingOverviewResponse(
        tenant_id=tenant_id,
        payments_enabled=getattr(request.app.state, "payment_gateway", None) is not None,
        minimum_age=ADULT_AGE,
    )


@router.post("/payments", status_code=201)
def create_payment(
    body: CreatePaymentRequest,
    principal: Annotated[Principal, Depends(require_action(Action.BILLING_CREATE))],
    tenant_id: TargetTenantId,
    gateway: Annotated[PaymentGatewayPort, Depends(get_payment_gateway)],
) -> PaymentResponse:
    """Start a payment for the family in scope."""
    currency = body.currency.lower()
    reference = gateway.create_payment_intent(
        tenant_id=tenant_id,
        principal_id=principal.principal_id,
        amount_cents=body.amount_cents,
        currency=currency,
        description=body.description,
    )
    logger.info(
        "payment_started",
        extra={
            "tenant_id": str(tenant_id),
            "principal_id": str(principal.principal_id),
            "amount_cents": body.amount_cents,
        },
    )
    return PaymentResponse(
        payment_reference=reference,
        amount_cents=body.amount_cents,
        currency=currency,
    )
