"""
Billing service: credit packages, saved cards and Stripe webhooks
"""
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import (
    DistributionStatus,
    LeadDistribution,
    LeadStatus,
    PaymentMethod,
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
from pricemyfloor.repositories.retailer_repository import RetailerRepository
from pricemyfloor.services.notification_service import NotificationService
from pricemyfloor.utils.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from pricemyfloor.utils.helpers import safe_get, utcnow
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


class BillingService:
    """Service for retailer-side payments"""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.notifier = notifier or NotificationService()
        self.retailers = RetailerRepository(db)
        self.credits = CreditRepository(db)
        self.distributions = DistributionRepository(db)
        self.payment_methods = PaymentMethodRepository(db)
        self.transactions = TransactionRepository(db)

    def get_retailer(self, retailer_id: int) -> Retailer:
        retailer = self.retailers.find_by_id(retailer_id)
        if not retailer:
            raise NotFoundError(f"Retailer with ID '{retailer_id}' not found")
        return retailer

    def _ensure_customer(self, retailer: Retailer) -> str:
        """Stripe customer id for a retailer, created on first use"""
        if retailer.stripe_customer_id:
            return retailer.stripe_customer_id
        try:
            customer_id = self.gateway.create_customer(
                email=retailer.email,
                name=retailer.business_name,
                metadata={"retailer_id": str(retailer.id)},
            )
        except (stripe.StripeError, RuntimeError) as e:
            logger.error(f"[red]❌ Could not create Stripe customer for retailer {retailer.id}:[/red] {e}")
            raise ExternalServiceError(f"Payment provider error: {e}")
        retailer.stripe_customer_id = customer_id
        self.db.commit()
        return customer_id

    def purchase_credits(self, retailer_id: int, package_type: str) -> Dict[str, Any]:
        """
        Start a hosted Checkout for a credit package.
        Credits are only added once the checkout.session.completed webhook arrives.
        """
        package = settings.credit_packages.get(package_type)
        if package is None:
            valid = ", ".join(sorted(settings.credit_packages, key=int))
            raise ValidationError(f"Invalid package type '{package_type}'. Choose one of: {valid}")

        retailer = self.get_retailer(retailer_id)
        customer_id = self._ensure_customer(retailer)

        try:
            session = self.gateway.create_checkout_session(
                customer_id=customer_id,
                product_name=package.name,
                product_description=f"{package.credits} lead credits for {retailer.business_name}",
                unit_amount_cents=package.price * 100,
                success_url=settings.stripe.checkout_success_url,
                cancel_url=settings.stripe.checkout_cancel_url,
                metadata={
                    "retailer_id": str(retailer.id),
                    "package_type": package_type,
                    "credits": str(package.credits),
                },
            )
        except (stripe.StripeError, RuntimeError) as e:
            logger.error(f"[red]❌ Checkout session failed for retailer {retailer.id}:[/red] {e}")
            raise ExternalServiceError(f"Payment provider error: {e}")

        return {
            "session_id": session["id"],
            "url": session["url"],
            "package_type": package_type,
            "credits": package.credits,
            "amount": package.price,
            "currency": settings.stripe.currency,
        }

    def create_setup_intent(self, retailer_id: int) -> Dict[str, str]:
        retailer = self.get_retailer(retailer_id)
        customer_id = self._ensure_customer(retailer)
        try:
            intent = self.gateway.create_setup_intent(customer_id)
        except (stripe.StripeError, RuntimeError) as e:
            raise ExternalServiceError(f"Payment provider error: {e}")
        return {"setup_intent_id": intent["id"], "client_secret": intent["client_secret"]}

    def save_payment_method(self, retailer_id: int, payment_method_id: str) -> PaymentMethod:
        """Store a card summary; a retailer's first card becomes its default"""
        self.get_retailer(retailer_id)
        existing = self.payment_methods.find_one_by(
            retailer_id=retailer_id, stripe_payment_method_id=payment_method_id
        )
        if existing:
            return existing

        try:
            card = self.gateway.retrieve_card(payment_method_id)
        except (stripe.StripeError, RuntimeError) as e:
            raise ExternalServiceError(f"Payment provider error: {e}")

        is_first = self.payment_methods.count_for_retailer(retailer_id) == 0
        method = self.payment_methods.create(
            retailer_id=retailer_id,
            stripe_payment_method_id=payment_method_id,
            card_brand=card.get("brand"),
            card_last4=card.get("last4"),
            card_exp_month=card.get("exp_month"),
            card_exp_year=card.get("exp_year"),
            is_default=is_first,
        )
        logger.info(
            f"[green]Saved payment method[/green] for retailer {retailer_id} "
            f"[dim]({card.get('brand')} ****{card.get('last4')}, default={is_first})[/dim]"
        )
        return method

    async def handle_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify and apply one Stripe event.

        Raises:
            ValidationError: If the signature is missing or wrong
            ExternalServiceError: If webhooks are not configured
        """
        if not signature:
            raise ValidationError("Missing Stripe-Signature header")
        try:
            event = self.gateway.parse_webhook(payload, signature)
        except stripe.SignatureVerificationError:
            logger.warning("[yellow]⚠️  Rejected webhook with invalid signature[/yellow]")
            raise ValidationError("Invalid signature")
        except ValueError:
            raise ValidationError("Invalid webhook payload")
        except RuntimeError as e:
            raise ExternalServiceError(str(e))

        event_type = event.get("type", "")
        data_object = safe_get(event, "data", "object", default={})
        logger.info(f"[cyan]Stripe webhook:[/cyan] {event_type} [dim]{event.get('id')}[/dim]")

        if event_type == "checkout.session.completed":
            status = self._handle_checkout_completed(data_object)
        elif event_type == "payment_intent.succeeded":
            status = await self._handle_payment_succeeded(data_object)
        elif event_type == "payment_intent.payment_failed":
            status = self._handle_payment_failed(data_object)
        else:
            logger.debug(f"[dim]Unhandled Stripe event: {event_type}[/dim]")
            status = "ignored"
        return {"received": True, "event_type": event_type, "status": status}

    def _handle_checkout_completed(self, session: Dict[str, Any]) -> str:
        session_id = session.get("id", "")
        metadata = session.get("metadata") or {}
        if session.get("payment_status") != "paid":
            logger.warning(f"[yellow]Checkout {session_id} not paid; no credits added[/yellow]")
            return "ignored"

        try:
            retailer_id = int(metadata["retailer_id"])
            credits = int(metadata["credits"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"[yellow]Checkout {session_id} missing credit metadata[/yellow]")
            return "ignored"

        if self.transactions.find_by_checkout_session(session_id):
            logger.info(f"[dim]Checkout {session_id} already credited[/dim]")
            return "already_processed"

        try:
            self.credits.add_credits(retailer_id, credits)
            self.transactions.create(
                commit=False,
                retailer_id=retailer_id,
                amount_cents=int(session.get("amount_total") or 0),
                currency=(session.get("currency") or settings.stripe.currency).lower(),
                payment_type=TransactionType.CREDIT_PURCHASE.value,
                status=TransactionStatus.COMPLETED.value,
                stripe_payment_intent_id=session.get("payment_intent"),
                stripe_checkout_session_id=session_id,
                description=f"Purchased {credits} lead credits (package {metadata.get('package_type')})",
            )
            self.db.commit()
        except IntegrityError:
            # Concurrent delivery of the same event won the insert
            self.db.rollback()
            logger.info(f"[dim]Checkout {session_id} already credited[/dim]")
            return "already_processed"

        logger.info(f"[green]✅ Added {credits} credits[/green] to retailer {retailer_id}")
        return "credited"

    def _update_ledger(self, intent_id: str, status: TransactionStatus) -> int:
        updated = self.transactions.mark_by_payment_intent(intent_id, status.value)
        logger.info(f"[cyan]PaymentIntent {intent_id} -> {status.value}[/cyan] ({updated} transactions)")
        return updated

    async def _handle_payment_succeeded(self, intent: Dict[str, Any]) -> str:
        """
        Settle the ledger and deliver a lead whose card charge was still
        processing when it was distributed.
        """
        intent_id = intent.get("id", "")
        updated = self._update_ledger(intent_id, TransactionStatus.COMPLETED)

        distribution = self.distributions.find_by_payment_intent(intent_id) if intent_id else None
        if distribution is None or distribution.was_paid:
            return "updated" if updated else "ignored"

        distribution.was_paid = True
        distribution.status = DistributionStatus.SENT.value
        distribution.sent_at = utcnow()
        lead = distribution.lead
        if lead.status == LeadStatus.NEW.value:
            lead.status = LeadStatus.ASSIGNED.value
        self.db.commit()
        logger.info(
            f"[green]✅ Lead {lead.lead_id} delivered[/green] to retailer {distribution.retailer_id} "
            f"after PaymentIntent {intent_id} settled"
        )

        await self.notifier.notify_retailer(distribution.retailer, lead, distribution)
        return "delivered"

    def _handle_payment_failed(self, intent: Dict[str, Any]) -> str:
        intent_id = intent.get("id", "")
        updated = self._update_ledger(intent_id, TransactionStatus.FAILED)

        distribution = self.distributions.find_by_payment_intent(intent_id) if intent_id else None
        if distribution is not None and distribution.status == DistributionStatus.PAYMENT_PROCESSING.value:
            distribution.status = DistributionStatus.PAYMENT_FAILED.value
            self.db.commit()
            logger.warning(
                f"[yellow]⚠️  PaymentIntent {intent_id} failed;[/yellow] "
                f"retailer {distribution.retailer_id} not delivered lead {distribution.lead.lead_id}"
            )
        return "updated" if updated else "ignored"

    def get_credit_balance(self, retailer_id: int) -> Dict[str, Any]:
        self.get_retailer(retailer_id)
        balance = self.credits.find_for_retailer(retailer_id)
        return {
            "retailer_id": retailer_id,
            "credits_remaining": balance.credits_remaining if balance else 0,
            "credits_used": balance.credits_used if balance else 0,
            "last_purchase_date": balance.last_purchase_date if balance else None,
        }

    def list_distributions(self, retailer_id: int, skip: int = 0, limit: int = 100) -> List[LeadDistribution]:
        self.get_retailer(retailer_id)
        return self.distributions.find_for_retailer(retailer_id, skip=skip, limit=limit)
