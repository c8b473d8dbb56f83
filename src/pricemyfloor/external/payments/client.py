"""
Stripe payments client
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from pricemyfloor.core.config import settings
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ChargeResult:
    """Outcome of a single off-session PaymentIntent"""
    payment_intent_id: str
    status: str

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentGateway:
    """
    Thin wrapper over the Stripe SDK.

    Every call passes the configured secret key explicitly rather than
    mutating the global stripe.api_key.
    """

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.stripe.secret_key
        self.webhook_secret = webhook_secret or settings.stripe.webhook_secret
        self.currency = settings.stripe.currency

    def _require_key(self) -> str:
        if not self.api_key:
            raise RuntimeError("Billing not configured - missing Stripe secret key")
        return self.api_key

    def create_customer(self, email: str, name: str, metadata: Dict[str, str]) -> str:
        """Create a Stripe customer; returns its id"""
        customer = stripe.Customer.create(
            email=email,
            name=name,
            metadata=metadata,
            api_key=self._require_key(),
        )
        logger.info(f"[green]Created Stripe customer[/green] [cyan]{customer.id}[/cyan] for {name}")
        return customer.id

    def charge(
        self,
        amount_cents: int,
        customer_id: str,
        payment_method_id: str,
        description: str,
        metadata: Dict[str, str],
    ) -> ChargeResult:
        """
        Charge a stored payment method once, off-session, auto-confirmed.

        Raises:
            stripe.StripeError: On decline or any provider error
        """
        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=self.currency,
            customer=customer_id,
            payment_method=payment_method_id,
            off_session=True,
            confirm=True,
            description=description,
            metadata=metadata,
            api_key=self._require_key(),
        )
        logger.info(
            f"[cyan]PaymentIntent[/cyan] {intent.id} "
            f"[dim]amount={amount_cents} status={intent.status}[/dim]"
        )
        return ChargeResult(payment_intent_id=intent.id, status=intent.status)

    def create_checkout_session(
        self,
        customer_id: str,
        product_name: str,
        product_description: str,
        unit_amount_cents: int,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, str]:
        """Create a hosted Checkout session for a one-off purchase"""
        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {
                            "name": product_name,
                            "description": product_description,
                        },
                        "unit_amount": unit_amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            api_key=self._require_key(),
        )
        logger.info(f"[green]Checkout session created[/green] [cyan]{session.id}[/cyan]")
        return {"id": session.id, "url": session.url}

    def create_setup_intent(self, customer_id: str) -> Dict[str, str]:
        """Create a SetupIntent so the frontend can save a card for off-session use"""
        intent = stripe.SetupIntent.create(
            customer=customer_id,
            payment_method_types=["card"],
            usage="off_session",
            api_key=self._require_key(),
        )
        return {"id": intent.id, "client_secret": intent.client_secret}

    def retrieve_card(self, payment_method_id: str) -> Dict[str, Any]:
        """Card summary for a payment method (brand, last4, expiry)"""
        method = stripe.PaymentMethod.retrieve(payment_method_id, api_key=self._require_key())
        card = method.card
        if card is None:
            return {}
        return {
            "brand": card.brand,
            "last4": card.last4,
            "exp_month": card.exp_month,
            "exp_year": card.exp_year,
        }

    def parse_webhook(self, payload: bytes, signature: str) -> stripe.Event:
        """
        Verify a webhook signature and build the stripe.Event.

        Raises:
            RuntimeError: If no webhook secret is configured
            ValueError: If the payload is not valid JSON
            stripe.SignatureVerificationError: If the signature does not match
        """
        if not self.webhook_secret:
            raise RuntimeError("Webhook secret not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret, api_key=self.api_key or None)
