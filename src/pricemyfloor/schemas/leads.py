"""
Lead API request and response schemas
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import EmailStr, Field

from pricemyfloor.database.models import VerificationChannel
from pricemyfloor.schemas.base import BaseSchema, SuccessSchema


class LeadSubmitRequest(BaseSchema):
    """Customer quote request form"""
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(None, max_length=30)
    postal_code: str = Field(..., max_length=10)
    brand_requested: str = Field(..., min_length=1, max_length=200)
    project_size: Optional[str] = Field(None, max_length=100)
    square_footage: Optional[int] = Field(None, ge=0)
    installation_required: bool = False
    timeline: Optional[str] = None
    product_details: Optional[str] = None
    notes: Optional[str] = None
    verification_method: VerificationChannel = VerificationChannel.EMAIL


class LeadSubmitResponse(SuccessSchema):
    lead_id: str
    verification_required: bool = True
    verification_method: VerificationChannel
    expires_at: Optional[datetime] = None
    message: str = "Lead submitted. Check your inbox for a verification code."


class SendVerificationRequest(BaseSchema):
    lead_id: str
    method: VerificationChannel = VerificationChannel.EMAIL
    contact: Optional[str] = None  # Overrides the email or phone on the lead


class SendVerificationResponse(SuccessSchema):
    lead_id: str
    method: VerificationChannel
    expires_at: datetime
    message: str = "Verification code sent"


class VerifyLeadRequest(BaseSchema):
    lead_id: str
    token: str = Field(..., min_length=1, max_length=10)


class VerifyLeadResponse(SuccessSchema):
    lead_id: str
    verified: bool
    already_verified: bool = False
    distribution: Optional[Dict[str, Any]] = None
    distribution_error: Optional[str] = None
    message: str


class LeadStatusResponse(SuccessSchema):
    """Lifecycle state of a lead, without customer contact details"""
    lead_id: str
    status: str
    verification_status: str
    verification_method: Optional[str] = None
    verified_at: Optional[datetime] = None
    brand_requested: str
    square_footage: Optional[int] = None
    created_at: Optional[datetime] = None


class RetailerResult(BaseSchema):
    retailer_id: int
    business_name: str
    outcome: str
    was_paid: bool
    charge_amount: float
    distribution_id: Optional[int] = None
    payment_intent_id: Optional[str] = None
    error: Optional[str] = None


class DistributionReport(SuccessSchema):
    lead_id: str
    square_footage: int
    lead_price: float
    total_matching_retailers: int
    retailers_attempted: int
    already_distributed: int
    distributions_created: int
    payment_pending: int
    payment_processing: int = 0
    failed: int
    results: List[RetailerResult]

