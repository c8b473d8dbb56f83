"""
Per-retailer payment settlement for a matched lead
"""
import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import (
    DistributionStatus,
    Lead,
    LeadDistribution,
    PaidVia,
    Retailer,
    TransactionStatus,
    TransactionType,
)
from pricemyfloor.external.payments.client import PaymentGateway
from pricemyfloor.repositories.billing_repository import (
    CreditRepository,
    DistributionRepository,
    PaymentMethodRepository,
    TransactionRepository,
)
from pricemyfloor.utils.helpers import to_cents, utcnow
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


class SettlementOutcome(str, enum.Enum):
    PAID_CREDIT = "paid_credit"
    PAID_CARD = "paid_card"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_PROCESSING = "payment_processing"
    CHARGE_FAILED = "charge_failed"


@dataclass
class SettlementResult:
    retailer_id: int
    business_name: str
    outcome: SettlementOutcome
    charge_amount: Decimal = Decimal("0")
    distribution: Optional[LeadDistribution] = None
    payment_intent_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome in (SettlementOutcome.PAID_CREDIT, SettlementOutcome.PAID_CARD)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retailer_id": self.retailer_id,
            "business_name": self.business_name,
            "outcome": self.outcome.value,
            "was_paid": self.delivered,
            "charge_amount": float(self.charge_amount),
            "distribution_id": self.distribution.id if self.distribution else None,
            "payment_intent_id": self.payment_intent_id,
            "error": self.error,
        }


class SettlementService:
    """
    Decides how one retailer pays for one lead and records the outcome.

    Order of preference: prepaid credit, then the default card, otherwise a
    payment_pending record. The charge is attempted exactly once; a decline
    leaves no distribution behind, only a failed ledger row. An intent that
    has not settled yet (processing, requires_action) is recorded as an
    undelivered payment_processing distribution carrying the intent id, so a
    re-run skips the retailer and the Stripe webhook finishes the delivery.
    """

    def __init__(self, db: Session, gateway: Optional[PaymentGateway] = None):
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.credits = CreditRepository(db)
        self.distributions = DistributionRepository(db)
        self.payment_methods = PaymentMethodRepository(db)
        self.transactions = TransactionRepository(db)

    def settle(self, lead: Lead, retailer: Retailer, lead_price: Decimal) -> SettlementResult:
        if self.credits.try_deduct(retailer.id):
            return self._record_credit_payment(lead, retailer, lead_price)

        payment_method = self.payment_methods.find_default(retailer.id)
        if payment_method is None or not retailer.stripe_customer_id:
            return self._record_payment_pending(lead, retailer, lead_price)

        return self._charge_card(lead, retailer, lead_price, payment_method.stripe_payment_method_id)

    def _new_distribution(self, lead: Lead, retailer: Retailer, lead_price: Decimal, **fields) -> LeadDistribution:
        return self.distributions.create(
            commit=False,
            lead_id=lead.id,
            retailer_id=retailer.id,
            lead_price=lead_price,
            brand_matched=lead.brand_requested,
            sent_at=utcnow(),
            **fields,
        )

    def _record_credit_payment(self, lead: Lead, retailer: Retailer, lead_price: Decimal) -> SettlementResult:
        distribution = self._new_distribution(
            lead,
            retailer,
            lead_price,
            payment_method=PaidVia.CREDIT.value,
            charge_amount=Decimal("0"),
            was_paid=True,
            status=DistributionStatus.SENT.value,
        )
        self.transactions.create(
            commit=False,
            retailer_id=retailer.id,
            lead_id=lead.id,
            distribution_id=distribution.id,
            amount_cents=to_cents(lead_price),
            currency=settings.stripe.currency,
            payment_type=TransactionType.CREDIT_DEDUCTION.value,
            status=TransactionStatus.COMPLETED.value,
            description=f"Lead credit used for lead {lead.lead_id[:8]}",
        )
        self.db.commit()
        logger.info(f"[green]Retailer {retailer.id} paid with credit[/green] for lead {lead.lead_id}")
        return SettlementResult(
            retailer_id=retailer.id,
            business_name=retailer.business_name,
            outcome=SettlementOutcome.PAID_CREDIT,
            distribution=distribution,
        )

    def _record_payment_pending(self, lead: Lead, retailer: Retailer, lead_price: Decimal) -> SettlementResult:
        distribution = self._new_distribution(
            lead,
            retailer,
            lead_price,
            payment_method=PaidVia.NONE.value,
            charge_amount=lead_price,
            was_paid=False,
            status=DistributionStatus.PAYMENT_PENDING.value,
        )
        self.db.commit()
        logger.info(
            f"[yellow]Retailer {retailer.id} has no credits or payment method;[/yellow] "
            f"lead {lead.lead_id} recorded as payment_pending"
        )
        return SettlementResult(
            retailer_id=retailer.id,
            business_name=retailer.business_name,
            outcome=SettlementOutcome.PAYMENT_PENDING,
            charge_amount=lead_price,
            distribution=distribution,
        )

    def _charge_card(
        self,
        lead: Lead,
        retailer: Retailer,
        lead_price: Decimal,
        payment_method_id: str,
    ) -> SettlementResult:
        amount_cents = to_cents(lead_price)
        try:
            charge = self.gateway.charge(
                amount_cents=amount_cents,
                customer_id=retailer.stripe_customer_id,
                payment_method_id=payment_method_id,
                description=f"Lead payment for {retailer.business_name}",
                metadata={"retailer_id": str(retailer.id), "lead_id": lead.lead_id},
            )
        except Exception as e:
            logger.warning(f"[yellow]⚠️  Card charge failed for retailer {retailer.id}:[/yellow] {e}")
            self._record_attempt(lead, retailer, amount_cents, TransactionStatus.FAILED, None)
            return SettlementResult(
                retailer_id=retailer.id,
                business_name=retailer.business_name,
                outcome=SettlementOutcome.CHARGE_FAILED,
                error=str(e),
            )

        if not charge.succeeded:
            logger.warning(
                f"[yellow]⚠️  PaymentIntent {charge.payment_intent_id} for retailer {retailer.id} "
                f"ended in status {charge.status}[/yellow]"
            )
            return self._record_processing(lead, retailer, lead_price, charge.payment_intent_id, charge.status)

        distribution = self._new_distribution(
            lead,
            retailer,
            lead_price,
            payment_method=PaidVia.CARD.value,
            charge_amount=lead_price,
            was_paid=True,
            status=DistributionStatus.SENT.value,
            stripe_payment_intent_id=charge.payment_intent_id,
        )
        self.transactions.create(
            commit=False,
            retailer_id=retailer.id,
            lead_id=lead.id,
            distribution_id=distribution.id,
            amount_cents=amount_cents,
            currency=settings.stripe.currency,
            payment_type=TransactionType.LEAD_PAYMENT.value,
            status=TransactionStatus.COMPLETED.value,
            stripe_payment_intent_id=charge.payment_intent_id,
            description=f"Lead payment for lead {lead.lead_id[:8]}",
        )
        self.db.commit()
        logger.info(f"[green]Retailer {retailer.id} charged {lead_price}[/green] for lead {lead.lead_id}")
        return SettlementResult(
            retailer_id=retailer.id,
            business_name=retailer.business_name,
            outcome=SettlementOutcome.PAID_CARD,
            charge_amount=lead_price,
            distribution=distribution,
            payment_intent_id=charge.payment_intent_id,
        )

    def _record_processing(
        self,
        lead: Lead,
        retailer: Retailer,
        lead_price: Decimal,
        payment_intent_id: str,
        intent_status: str,
    ) -> SettlementResult:
        distribution = self._new_distribution(
            lead,
            retailer,
            lead_price,
            payment_method=PaidVia.CARD.value,
            charge_amount=lead_price,
            was_paid=False,
            status=DistributionStatus.PAYMENT_PROCESSING.value,
            stripe_payment_intent_id=payment_intent_id,
        )
        self.transactions.create(
            commit=False,
            retailer_id=retailer.id,
            lead_id=lead.id,
            distribution_id=distribution.id,
            amount_cents=to_cents(lead_price),
            currency=settings.stripe.currency,
            payment_type=TransactionType.LEAD_PAYMENT.value,
            status=TransactionStatus.PENDING.value,
            stripe_payment_intent_id=payment_intent_id,
            description=f"Lead payment for lead {lead.lead_id[:8]}",
        )
        self.db.commit()
        return SettlementResult(
            retailer_id=retailer.id,
            business_name=retailer.business_name,
            outcome=SettlementOutcome.PAYMENT_PROCESSING,
            charge_amount=lead_price,
            distribution=distribution,
            payment_intent_id=payment_intent_id,
            error=f"Payment status {intent_status}",
        )

    def _record_attempt(
        self,
        lead: Lead,
        retailer: Retailer,
        amount_cents: int,
        status: TransactionStatus,
        payment_intent_id: Optional[str],
    ) -> None:
        self.transactions.create(
            retailer_id=retailer.id,
            lead_id=lead.id,
            amount_cents=amount_cents,
            currency=settings.stripe.currency,
            payment_type=TransactionType.LEAD_PAYMENT.value,
            status=status.value,
            stripe_payment_intent_id=payment_intent_id,
            description=f"Lead payment attempt for lead {lead.lead_id[:8]}",
        )
