import json
import os
from datetime import timedelta
from pathlib import Path

os.environ["PRICEMYFLOOR_CONFIG"] = str(Path(__file__).parent / "config.yaml")

import pytest
import stripe
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from pricemyfloor.core import dependencies
from pricemyfloor.database.connection import build_engine
from pricemyfloor.database.models import (
    Base,
    BrandSubscription,
    FlooringBrand,
    Lead,
    PaymentMethod,
    Retailer,
    RetailerLeadCredit,
)
from pricemyfloor.external.payments.client import ChargeResult
from pricemyfloor.main import app
from pricemyfloor.services.notification_service import NotificationService
from pricemyfloor.utils.helpers import utcnow


class FakeGateway:
    """In-memory stand-in for the Stripe wrapper"""

    def __init__(self):
        self.customers = []
        self.charges = []
        self.checkout_sessions = []
        self.charge_status = "succeeded"
        self.charge_error = None

    def create_customer(self, email, name, metadata):
        self.customers.append({"email": email, "name": name, "metadata": metadata})
        return f"cus_test_{len(self.customers)}"

    def charge(self, amount_cents, customer_id, payment_method_id, description, metadata):
        self.charges.append(
            {
                "amount_cents": amount_cents,
                "customer_id": customer_id,
                "payment_method_id": payment_method_id,
                "metadata": metadata,
            }
        )
        if self.charge_error is not None:
            raise self.charge_error
        return ChargeResult(payment_intent_id=f"pi_test_{len(self.charges)}", status=self.charge_status)

    def create_checkout_session(self, **kwargs):
        self.checkout_sessions.append(kwargs)
        session_id = f"cs_test_{len(self.checkout_sessions)}"
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def create_setup_intent(self, customer_id):
        return {"id": "seti_test_1", "client_secret": "seti_test_1_secret"}

    def retrieve_card(self, payment_method_id):
        return {"brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030}

    def parse_webhook(self, payload, signature):
        if signature != "valid-signature":
            raise stripe.SignatureVerificationError("No signatures found", signature)
        return json.loads(payload)


class FakeEmailClient:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_email(self, to, subject, html):
        if self.fail:
            raise RuntimeError("email provider unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"id": f"email_{len(self.sent)}"}


class FakeSMSClient:
    def __init__(self):
        self.sent = []
        self.approved_code = "424242"

    def send_code(self, phone):
        self.sent.append(phone)
        return "pending"

    def check_code(self, phone, code):
        return code == self.approved_code


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def sms_client():
    return FakeSMSClient()


@pytest.fixture
def notifier(email_client):
    return NotificationService(email_client=email_client)


@pytest.fixture
def client(db, gateway, email_client, sms_client):
    def override_get_db():
        yield db

    app.dependency_overrides[dependencies.get_db] = override_get_db
    app.dependency_overrides[dependencies.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[dependencies.get_email_client] = lambda: email_client
    app.dependency_overrides[dependencies.get_sms_client] = lambda: sms_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def brand(db):
    db.add_all([FlooringBrand(name="BrandX"), FlooringBrand(name="Shaw")])
    db.commit()


@pytest.fixture
def make_retailer(db):
    def _make(
        business_name="Toronto Floors",
        email="sales@torontofloors.test",
        prefixes=("M5V",),
        installation_preference="both",
        urgency_preference="any",
        brands=("BrandX",),
        sqft_min=0,
        sqft_max=None,
        credits=None,
        card=False,
        status="active",
    ):
        retailer = Retailer(
            business_name=business_name,
            email=email,
            postal_code_prefixes=list(prefixes),
            installation_preference=installation_preference,
            urgency_preference=urgency_preference,
            status=status,
            stripe_customer_id="cus_existing" if card else None,
        )
        db.add(retailer)
        db.flush()
        for brand_name in brands:
            db.add(
                BrandSubscription(
                    retailer_id=retailer.id,
                    brand_name=brand_name,
                    sqft_tier_min=sqft_min,
                    sqft_tier_max=sqft_max,
                )
            )
        if credits is not None:
            db.add(RetailerLeadCredit(retailer_id=retailer.id, credits_remaining=credits, credits_used=0))
        if card:
            db.add(
                PaymentMethod(
                    retailer_id=retailer.id,
                    stripe_payment_method_id="pm_card_visa",
                    card_brand="visa",
                    card_last4="4242",
                    is_default=True,
                )
            )
        db.commit()
        return retailer

    return _make


@pytest.fixture
def make_lead(db):
    def _make(verification_status="verified", **overrides):
        now = utcnow()
        fields = dict(
            customer_name="Jane Doe",
            customer_email="jane@example.com",
            customer_phone="+14165550100",
            postal_code="M5V3A8",
            brand_requested="BrandX",
            project_size="750 sq ft",
            square_footage=750,
            installation_required=True,
            timeline="As soon as possible",
            status="new",
            verification_status=verification_status,
            verification_method="email",
            verification_token="123456",
            verification_sent_at=now,
            verification_expires_at=now + timedelta(minutes=10),
        )
        fields.update(overrides)
        lead = Lead(**fields)
        db.add(lead)
        db.commit()
        return lead

    return _make
