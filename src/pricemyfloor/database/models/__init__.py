"""
Database models module
"""
from pricemyfloor.database.models.base import Base, BaseModel
from pricemyfloor.database.models.database import (
    BrandSubscription,
    FlooringBrand,
    InstallationPreference,
    Lead,
    LeadDistribution,
    LeadStatus,
    PaidVia,
    PaymentMethod,
    PaymentTransaction,
    Retailer,
    RetailerLeadCredit,
    RetailerStatus,
    TransactionStatus,
    TransactionType,
    DistributionStatus,
    UrgencyPreference,
    VerificationChannel,
    VerificationState,
)

__all__ = [
    "Base",
    "BaseModel",
    "BrandSubscription",
    "DistributionStatus",
    "FlooringBrand",
    "InstallationPreference",
    "Lead",
    "LeadDistribution",
    "LeadStatus",
    "PaidVia",
    "PaymentMethod",
    "PaymentTransaction",
    "Retailer",
    "RetailerLeadCredit",
    "RetailerStatus",
    "TransactionStatus",
    "TransactionType",
    "UrgencyPreference",
    "VerificationChannel",
    "VerificationState",
]
