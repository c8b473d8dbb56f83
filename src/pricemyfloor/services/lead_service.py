"""
Lead service: submission, verification and distribution of customer leads
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import (
    Lead,
    LeadStatus,
    VerificationChannel,
    VerificationState,
)
from pricemyfloor.external.payments.client import PaymentGateway
from pricemyfloor.external.sms.client import SMSVerificationClient
from pricemyfloor.repositories.lead_repository import LeadRepository
from pricemyfloor.repositories.retailer_repository import FlooringBrandRepository
from pricemyfloor.schemas.leads import LeadSubmitRequest
from pricemyfloor.services.distribution_service import DistributionService
from pricemyfloor.services.notification_service import NotificationService
from pricemyfloor.services.pricing import resolve_square_footage
from pricemyfloor.services.verification_service import VerificationService
from pricemyfloor.utils.exceptions import (
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from pricemyfloor.utils.helpers import (
    format_phone_e164,
    is_valid_email,
    is_valid_phone,
    is_valid_postal_code,
    normalize_postal_code,
    sanitize_text,
    utcnow,
)
from pricemyfloor.utils.logging import get_logger, app_logger

logger = get_logger(__name__)


class LeadService:
    """Service for the customer-facing lead lifecycle"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationService] = None,
        sms_client: Optional[SMSVerificationClient] = None,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.db = db
        self.leads = LeadRepository(db)
        self.brands = FlooringBrandRepository(db)
        self.notifier = notifier or NotificationService()
        self.verification = VerificationService(db, self.notifier, sms_client)
        self.distribution = DistributionService(db, gateway, self.notifier)

    def get_lead(self, lead_id: str) -> Lead:
        """
        Get a lead by its public identifier.

        Raises:
            NotFoundError: If no lead has this id
        """
        lead = self.leads.find_by_lead_id(lead_id)
        if not lead:
            raise NotFoundError(f"Lead with ID '{lead_id}' not found")
        return lead

    def _validate(self, data: LeadSubmitRequest) -> None:
        if not data.customer_name.strip():
            raise ValidationError("Customer name is required")
        if not is_valid_email(data.customer_email):
            raise ValidationError("Invalid email format")
        if not is_valid_phone(data.customer_phone):
            raise ValidationError("Invalid phone number format")
        if not is_valid_postal_code(data.postal_code):
            raise ValidationError("Invalid Canadian postal code format (expected A1A 1A1)")
        if not data.brand_requested.strip():
            raise ValidationError("Brand is required")
        if data.verification_method == VerificationChannel.SMS and not data.customer_phone:
            raise ValidationError("A phone number is required for SMS verification")

    def _check_rate_limits(self, client_ip: Optional[str], email: str) -> None:
        config = settings.submission
        since = utcnow() - timedelta(minutes=config.rate_limit_window_minutes)

        if client_ip and self.leads.count_since_by_ip(client_ip, since) >= config.max_per_ip:
            logger.warning(f"[yellow]⚠️  Rate limit hit for IP {client_ip}[/yellow]")
            raise RateLimitError()
        if self.leads.count_since_by_email(email, since) >= config.max_per_email:
            logger.warning(f"[yellow]⚠️  Rate limit hit for email {email}[/yellow]")
            raise RateLimitError("Too many submissions for this email address. Please wait before submitting again.")

    def _check_brand(self, brand: str) -> None:
        if brand == settings.distribution.no_preference_brand:
            return
        if not self.brands.find_active_by_name(brand):
            raise ValidationError(f"Unknown flooring brand '{brand}'")

    async def submit_lead(
        self,
        data: LeadSubmitRequest,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate and store a new lead, then send its verification code.

        A failure to deliver the code is logged but does not fail the
        submission; the customer can ask for a new code.

        Raises:
            ValidationError: On malformed input, unknown brand or unresolvable size
            RateLimitError: If the IP or email submitted too often recently
        """
        self._validate(data)

        email = data.customer_email.strip().lower()
        brand = data.brand_requested.strip()
        self._check_rate_limits(client_ip, email)
        self._check_brand(brand)

        project_size = sanitize_text(data.project_size)
        square_footage = resolve_square_footage(data.square_footage, project_size)

        try:
            lead = self.leads.create(
                lead_id=str(uuid.uuid4()),
                customer_name=sanitize_text(data.customer_name, 100),
                customer_email=email,
                customer_phone=format_phone_e164(data.customer_phone) if data.customer_phone else None,
                postal_code=normalize_postal_code(data.postal_code),
                brand_requested=brand,
                project_size=project_size,
                square_footage=square_footage,
                installation_required=data.installation_required,
                timeline=sanitize_text(data.timeline),
                product_details=sanitize_text(data.product_details),
                notes=sanitize_text(data.notes),
                status=LeadStatus.NEW.value,
                verification_status=VerificationState.PENDING_VERIFICATION.value,
                verification_method=data.verification_method.value,
                client_ip=client_ip,
                user_agent=sanitize_text(user_agent),
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[red]❌ Failed to save lead:[/red] {e}")
            raise DatabaseError("Failed to save lead")
        app_logger.info(
            f"[green]📥 Lead {lead.lead_id} submitted[/green] "
            f"[dim]brand={brand} postal={lead.postal_code} sqft={square_footage}[/dim]"
        )

        expires_at: Optional[datetime] = None
        try:
            expires_at = await self.verification.send_code(lead, data.verification_method)
        except ExternalServiceError as e:
            logger.error(f"[red]❌ Verification code for lead {lead.lead_id} not sent:[/red] {e.detail}")

        return {
            "lead_id": lead.lead_id,
            "verification_required": True,
            "verification_method": data.verification_method.value,
            "expires_at": expires_at,
        }

    async def resend_verification(
        self,
        lead_id: str,
        method: VerificationChannel = VerificationChannel.EMAIL,
        contact: Optional[str] = None,
    ) -> datetime:
        """Issue a replacement code; the previous one stops working"""
        lead = self.get_lead(lead_id)
        if method == VerificationChannel.SMS and contact:
            if not is_valid_phone(contact):
                raise ValidationError("Invalid phone number format")
            contact = format_phone_e164(contact)
        return await self.verification.send_code(lead, method, contact)

    async def verify_lead(self, lead_id: str, token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Check a verification code and distribute the lead on success.

        The verification is committed before distribution starts; a pipeline
        failure is logged and reported without undoing it.
        """
        lead = self.get_lead(lead_id)
        newly_verified = self.verification.check_code(lead, token, now=now)

        result: Dict[str, Any] = {
            "lead_id": lead.lead_id,
            "verified": True,
            "already_verified": not newly_verified,
            "distribution": None,
        }
        if not newly_verified:
            return result

        try:
            result["distribution"] = await self.distribution.distribute(lead)
        except Exception as e:
            self.db.rollback()
            logger.error(f"[red]❌ Distribution failed for verified lead {lead.lead_id}:[/red] {e}")
            result["distribution_error"] = str(getattr(e, "detail", e))
        return result

    async def distribute_lead(self, lead_id: str) -> Dict[str, Any]:
        """Re-run distribution for a verified lead; retailers already served are skipped"""
        lead = self.get_lead(lead_id)
        return await self.distribution.distribute(lead)

    def cancel_lead(self, lead_id: str) -> Lead:
        """
        Cancel a pending or verified lead.

        Raises:
            InvalidStateError: If the lead is expired or already cancelled
        """
        lead = self.get_lead(lead_id)
        self.verification.transition(lead, VerificationState.CANCELLED)
        self.db.commit()
        logger.info(f"[yellow]Lead {lead.lead_id} cancelled[/yellow]")
        return lead
