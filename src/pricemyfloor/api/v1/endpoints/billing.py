"""
Billing API endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from pricemyfloor.core.dependencies import get_billing_service
from pricemyfloor.services.billing_service import BillingService
from pricemyfloor.utils.logging import get_logger
from pricemyfloor.schemas.billing import (
    PaymentMethodResponse,
    PurchaseCreditsRequest,
    PurchaseCreditsResponse,
    SavePaymentMethodRequest,
    SetupIntentRequest,
    SetupIntentResponse,
    WebhookResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/billing")


@router.post("/purchase-credits", response_model=PurchaseCreditsResponse)
async def purchase_credits(
    payload: PurchaseCreditsRequest,
    service: BillingService = Depends(get_billing_service),
):
    """Start a Stripe Checkout for a lead credit package"""
    result = service.purchase_credits(payload.retailer_id, payload.package_type)
    return {"success": True, **result}


@router.post("/setup-intent", response_model=SetupIntentResponse)
async def create_setup_intent(
    payload: SetupIntentRequest,
    service: BillingService = Depends(get_billing_service),
):
    """Create a SetupIntent so a card can be saved for off-session lead charges"""
    result = service.create_setup_intent(payload.retailer_id)
    return {"success": True, **result}


@router.post("/payment-methods", response_model=PaymentMethodResponse)
async def save_payment_method(
    payload: SavePaymentMethodRequest,
    service: BillingService = Depends(get_billing_service),
):
    method = service.save_payment_method(payload.retailer_id, payload.payment_method_id)
    return PaymentMethodResponse.model_validate(method)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    service: BillingService = Depends(get_billing_service),
):
    """
    Stripe webhook receiver.

    Handles checkout.session.completed (credit purchases) and
    payment_intent.succeeded / payment_intent.payment_failed (ledger updates,
    and delivery of leads whose card charge was still processing).
    """
    payload = await request.body()
    result = await service.handle_webhook(payload, stripe_signature or "")
    return {"success": True, **result}
