"""
Billing and retailer API request and response schemas
"""
from typing import List, Optional
from datetime import datetime

from pydantic import Field

from pricemyfloor.schemas.base import BaseSchema, IDSchema, SuccessSchema


class PurchaseCreditsRequest(BaseSchema):
    retailer_id: int
    package_type: str = Field(..., description="Credit package: 100, 200 or 500")


class PurchaseCreditsResponse(SuccessSchema):
    session_id: str
    url: Optional[str] = None
    package_type: str
    credits: int
    amount: int
    currency: str


class SetupIntentRequest(BaseSchema):
    retailer_id: int


class SetupIntentResponse(SuccessSchema):
    setup_intent_id: str
    client_secret: str


class SavePaymentMethodRequest(BaseSchema):
    retailer_id: int
    payment_method_id: str = Field(..., min_length=1)


class PaymentMethodResponse(SuccessSchema, IDSchema):
    retailer_id: int
    stripe_payment_method_id: str
    card_brand: Optional[str] = None
    card_last4: Optional[str] = None
    card_exp_month: Optional[int] = None
    card_exp_year: Optional[int] = None
    is_default: bool


class WebhookResponse(SuccessSchema):
    received: bool
    event_type: str
    status: str


class CreditBalanceResponse(SuccessSchema):
    retailer_id: int
    credits_remaining: int
    credits_used: int
    last_purchase_date: Optional[datetime] = None


class DistributionSummary(IDSchema):
    """One lead as delivered to the retailer that received it"""
    lead_id: str
    lead_price: float
    charge_amount: float
    payment_method: str
    was_paid: bool
    status: str
    brand_matched: Optional[str] = None
    sent_at: datetime


class DistributionListResponse(SuccessSchema):
    retailer_id: int
    skip: int
    limit: int
    total: int
    distributions: List[DistributionSummary]
