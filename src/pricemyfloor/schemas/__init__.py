"""
Pydantic schemas for request/response validation
"""
from pricemyfloor.schemas.base import (
    BaseSchema,
    TimestampSchema,
    IDSchema,
    SuccessSchema,
    ErrorResponse,
)
from pricemyfloor.schemas.leads import (
    LeadSubmitRequest,
    LeadSubmitResponse,
    SendVerificationRequest,
    SendVerificationResponse,
    VerifyLeadRequest,
    VerifyLeadResponse,
    LeadStatusResponse,
    RetailerResult,
    DistributionReport,
)
from pricemyfloor.schemas.billing import (
    PurchaseCreditsRequest,
    PurchaseCreditsResponse,
    SetupIntentRequest,
    SetupIntentResponse,
    SavePaymentMethodRequest,
    PaymentMethodResponse,
    WebhookResponse,
    CreditBalanceResponse,
    DistributionSummary,
    DistributionListResponse,
)

__all__ = [
    # Base schemas
    "BaseSchema",
    "TimestampSchema",
    "IDSchema",
    "SuccessSchema",
    "ErrorResponse",
    # Lead schemas
    "LeadSubmitRequest",
    "LeadSubmitResponse",
    "SendVerificationRequest",
    "SendVerificationResponse",
    "VerifyLeadRequest",
    "VerifyLeadResponse",
    "LeadStatusResponse",
    "RetailerResult",
    "DistributionReport",
    # Billing schemas
    "PurchaseCreditsRequest",
    "PurchaseCreditsResponse",
    "SetupIntentRequest",
    "SetupIntentResponse",
    "SavePaymentMethodRequest",
    "PaymentMethodResponse",
    "WebhookResponse",
    "CreditBalanceResponse",
    "DistributionSummary",
    "DistributionListResponse",
]
