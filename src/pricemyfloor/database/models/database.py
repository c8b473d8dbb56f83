"""
Database models for the marketplace tables.
"""
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pricemyfloor.database.models.base import BaseModel
from pricemyfloor.utils.helpers import utcnow


class VerificationState(str, enum.Enum):
    """Lead verification lifecycle. Only the transitions below are legal."""
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "VerificationState") -> bool:
        return target in _VERIFICATION_TRANSITIONS[self]


_VERIFICATION_TRANSITIONS = {
    VerificationState.PENDING_VERIFICATION: {
        VerificationState.VERIFIED,
        VerificationState.EXPIRED,
        VerificationState.CANCELLED,
    },
    VerificationState.VERIFIED: {VerificationState.CANCELLED},
    VerificationState.EXPIRED: set(),
    VerificationState.CANCELLED: set(),
}


class VerificationChannel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"


class LeadStatus(str, enum.Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    QUOTED = "quoted"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class RetailerStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class InstallationPreference(str, enum.Enum):
    SUPPLY_ONLY = "supply_only"
    SUPPLY_AND_INSTALL = "supply_and_install"
    BOTH = "both"


class UrgencyPreference(str, enum.Enum):
    ASAP_ONLY = "asap_only"
    FLEXIBLE = "flexible"
    ANY = "any"


class PaidVia(str, enum.Enum):
    CREDIT = "credit"
    CARD = "card"
    NONE = "none"


class DistributionStatus(str, enum.Enum):
    SENT = "sent"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_PROCESSING = "payment_processing"
    PAYMENT_FAILED = "payment_failed"


class TransactionType(str, enum.Enum):
    CREDIT_DEDUCTION = "credit_deduction"
    LEAD_PAYMENT = "lead_payment"
    CREDIT_PURCHASE = "credit_purchase"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


def _new_lead_id() -> str:
    return str(uuid.uuid4())


class Lead(BaseModel):
    """
    A homeowner's flooring quote request.
    Customer fields are written once at submission and never updated.
    """
    __tablename__ = "leads"

    lead_id = Column(String(36), unique=True, nullable=False, index=True, default=_new_lead_id)

    # Customer Information
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=True)
    postal_code = Column(String(10), nullable=False, index=True)

    # Project Information
    brand_requested = Column(String(200), nullable=False)
    project_size = Column(String(100), nullable=True)
    square_footage = Column(Integer, nullable=True)
    installation_required = Column(Boolean, nullable=False, default=False)
    timeline = Column(String(100), nullable=True)
    product_details = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Lifecycle
    status = Column(String(20), nullable=False, default=LeadStatus.NEW.value, index=True)
    verification_status = Column(
        String(30), nullable=False, default=VerificationState.PENDING_VERIFICATION.value, index=True
    )
    verification_method = Column(String(10), nullable=True)
    verification_token = Column(String(10), nullable=True)
    verification_sent_at = Column(DateTime, nullable=True)
    verification_expires_at = Column(DateTime, nullable=True)
    verified_at = Column(DateTime, nullable=True)

    # Submission tracking (rate limiting)
    client_ip = Column(String(64), nullable=True, index=True)
    user_agent = Column(String(500), nullable=True)

    distributions = relationship("LeadDistribution", back_populates="lead")

    @property
    def verification_state(self) -> VerificationState:
        return VerificationState(self.verification_status)


class Retailer(BaseModel):
    """A vetted business receiving leads. Never hard-deleted."""
    __tablename__ = "retailers"

    business_name = Column(String(200), nullable=False)
    contact_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    # Coverage and preferences
    postal_code_prefixes = Column(JSON, nullable=False, default=list)
    installation_preference = Column(
        String(30), nullable=False, default=InstallationPreference.BOTH.value
    )
    urgency_preference = Column(String(20), nullable=False, default=UrgencyPreference.ANY.value)

    # Payment
    stripe_customer_id = Column(String(100), nullable=True)

    status = Column(String(20), nullable=False, default=RetailerStatus.PENDING.value, index=True)

    subscriptions = relationship("BrandSubscription", back_populates="retailer")


class BrandSubscription(BaseModel):
    """A retailer's opt-in to leads for one brand within a square footage band"""
    __tablename__ = "brand_subscriptions"

    retailer_id = Column(Integer, ForeignKey("retailers.id"), nullable=False, index=True)
    brand_name = Column(String(200), nullable=False, index=True)
    sqft_tier_min = Column(Integer, nullable=False, default=0)
    sqft_tier_max = Column(Integer, nullable=True)  # None means unbounded
    is_active = Column(Boolean, nullable=False, default=True)

    retailer = relationship("Retailer", back_populates="subscriptions")


class LeadDistribution(BaseModel):
    """
    One retailer's copy of a lead: delivered, payment-pending, or holding
    an unsettled card charge that a Stripe webhook later resolves.
    At most one per (lead, retailer); its presence blocks any further charge.
    """
    __tablename__ = "lead_distributions"
    __table_args__ = (UniqueConstraint("lead_id", "retailer_id", name="uq_distribution_lead_retailer"),)

    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    retailer_id = Column(Integer, ForeignKey("retailers.id"), nullable=False, index=True)
    lead_price = Column(Numeric(10, 2), nullable=False)
    charge_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(10), nullable=False)
    was_paid = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False)
    stripe_payment_intent_id = Column(String(100), nullable=True, index=True)
    brand_matched = Column(String(200), nullable=True)
    sent_at = Column(DateTime, nullable=False, default=utcnow)

    lead = relationship("Lead", back_populates="distributions")
    retailer = relationship("Retailer")


class RetailerLeadCredit(BaseModel):
    """Prepaid lead credit counters, one row per retailer"""
    __tablename__ = "retailer_lead_credits"

    retailer_id = Column(Integer, ForeignKey("retailers.id"), nullable=False, unique=True)
    credits_remaining = Column(Integer, nullable=False, default=0)
    credits_used = Column(Integer, nullable=False, default=0)
    last_purchase_date = Column(DateTime, nullable=True)


class PaymentTransaction(BaseModel):
    """Append-only ledger of credit deductions, card charge attempts and credit purchases"""
    __tablename__ = "payment_transactions"

    retailer_id = Column(Integer, ForeignKey("retailers.id"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=True)
    distribution_id = Column(Integer, ForeignKey("lead_distributions.id"), nullable=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="cad")
    payment_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False)
    stripe_payment_intent_id = Column(String(100), nullable=True, index=True)
    stripe_checkout_session_id = Column(String(100), nullable=True, unique=True)
    description = Column(String(500), nullable=True)


class PaymentMethod(BaseModel):
    """Card saved against a retailer's Stripe customer"""
    __tablename__ = "payment_methods"

    retailer_id = Column(Integer, ForeignKey("retailers.id"), nullable=False, index=True)
    stripe_payment_method_id = Column(String(100), nullable=False)
    card_brand = Column(String(30), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_exp_month = Column(Integer, nullable=True)
    card_exp_year = Column(Integer, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)


class FlooringBrand(BaseModel):
    """Catalogue of brands a lead may request"""
    __tablename__ = "flooring_brands"

    name = Column(String(200), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
