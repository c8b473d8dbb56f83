"""
Shared dependencies for FastAPI routes
"""
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from pricemyfloor.database.session import get_session
from pricemyfloor.external.email.client import EmailClient
from pricemyfloor.external.payments.client import PaymentGateway
from pricemyfloor.external.sms.client import SMSVerificationClient
from pricemyfloor.services.billing_service import BillingService
from pricemyfloor.services.lead_service import LeadService
from pricemyfloor.services.notification_service import NotificationService


def get_db() -> Generator:
    """
    Database session dependency.
    Yields a database session from the pool and ensures it's closed after use.
    """
    db = get_session()
    try:
        yield db
    finally:
        db.close()


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


def get_email_client() -> EmailClient:
    return EmailClient()


def get_sms_client() -> SMSVerificationClient:
    return SMSVerificationClient()


def get_notifier(email_client: EmailClient = Depends(get_email_client)) -> NotificationService:
    return NotificationService(email_client=email_client)


def get_lead_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    sms_client: SMSVerificationClient = Depends(get_sms_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> LeadService:
    return LeadService(db, notifier=notifier, sms_client=sms_client, gateway=gateway)


def get_billing_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notifier),
) -> BillingService:
    return BillingService(db, gateway=gateway, notifier=notifier)
