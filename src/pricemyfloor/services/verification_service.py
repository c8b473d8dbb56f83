"""
Lead verification: one-time codes and the verification state machine
"""
import hmac
import re
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import (
    Lead,
    LeadStatus,
    VerificationChannel,
    VerificationState,
)
from pricemyfloor.external.sms.client import SMSVerificationClient
from pricemyfloor.services.notification_service import NotificationService
from pricemyfloor.utils.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    ValidationError,
    VerificationExpiredError,
)
from pricemyfloor.utils.helpers import utcnow
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


def generate_code(length: Optional[int] = None) -> str:
    """Random numeric code with no leading zero, e.g. 6 digits -> 100000..999999"""
    length = length or settings.verification.code_length
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


class VerificationService:
    """
    Issues and checks one-time codes.

    At most one code is valid per lead: issuing a new one overwrites the
    stored code and expiry. A code is accepted strictly before its expiry
    timestamp; at or after it the lead moves to expired for good.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationService] = None,
        sms_client: Optional[SMSVerificationClient] = None,
    ):
        self.db = db
        self.notifier = notifier or NotificationService()
        self.sms_client = sms_client or SMSVerificationClient()

    def transition(self, lead: Lead, target: VerificationState) -> None:
        """
        Move a lead to a new verification state. Not committed here.

        Raises:
            InvalidStateError: If the transition is not allowed
        """
        current = lead.verification_state
        if not current.can_transition_to(target):
            raise InvalidStateError(
                f"Lead '{lead.lead_id}' cannot move from {current.value} to {target.value}"
            )
        lead.verification_status = target.value
        if target == VerificationState.CANCELLED:
            lead.status = LeadStatus.CANCELLED.value
        logger.debug(f"[dim]Lead {lead.lead_id}: {current.value} -> {target.value}[/dim]")

    async def send_code(
        self,
        lead: Lead,
        method: VerificationChannel,
        contact: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> datetime:
        """
        Issue a fresh code, replacing any previous one.

        Returns:
            The new expiry timestamp

        Raises:
            InvalidStateError: If the lead is no longer pending verification
            ValidationError: If there is no contact for the channel
            ExternalServiceError: If the email or SMS provider fails
        """
        if lead.verification_state != VerificationState.PENDING_VERIFICATION:
            raise InvalidStateError(
                f"Lead '{lead.lead_id}' is {lead.verification_status}; a new code cannot be issued"
            )

        now = now or utcnow()
        ttl = settings.verification.code_ttl_minutes
        expires_at = now + timedelta(minutes=ttl)
        token: Optional[str] = None

        try:
            if method == VerificationChannel.EMAIL:
                destination = contact or lead.customer_email
                token = generate_code()
                await self.notifier.send_verification_code(destination, token, ttl)
            else:
                destination = contact or lead.customer_phone
                if not destination:
                    raise ValidationError("A phone number is required for SMS verification")
                self.sms_client.send_code(destination)
        except ValidationError:
            raise
        except Exception as e:
            logger.error(f"[red]❌ Failed to send {method.value} verification for lead {lead.lead_id}:[/red] {e}")
            raise ExternalServiceError(f"Failed to send {method.value} verification: {e}")

        lead.verification_token = token
        lead.verification_method = method.value
        lead.verification_sent_at = now
        lead.verification_expires_at = expires_at
        self.db.commit()

        logger.info(
            f"[green]Verification code sent[/green] via {method.value} for lead {lead.lead_id} "
            f"[dim](expires {expires_at.isoformat()})[/dim]"
        )
        return expires_at

    def check_code(self, lead: Lead, token: str, now: Optional[datetime] = None) -> bool:
        """
        Validate a code for a pending lead.

        Returns:
            True when the lead was verified by this call, False when it was
            already verified (nothing changed)

        Raises:
            InvalidStateError: If the lead is expired or cancelled
            ValidationError: If no code was issued or the code is wrong
            VerificationExpiredError: If the code expired; the lead is moved to expired
            ExternalServiceError: If the SMS provider cannot be reached
        """
        state = lead.verification_state
        if state == VerificationState.VERIFIED:
            logger.info(f"[cyan]Lead {lead.lead_id} already verified[/cyan]")
            return False
        if state != VerificationState.PENDING_VERIFICATION:
            raise InvalidStateError(f"Lead '{lead.lead_id}' is {state.value} and can no longer be verified")
        if lead.verification_expires_at is None:
            raise ValidationError("No verification code has been issued. Please request a new code.")

        now = now or utcnow()
        if now >= lead.verification_expires_at:
            self.transition(lead, VerificationState.EXPIRED)
            self.db.commit()
            logger.info(f"[yellow]Verification expired for lead {lead.lead_id}[/yellow]")
            raise VerificationExpiredError()

        if not self._code_is_valid(lead, token):
            raise ValidationError("Invalid verification code")

        self.transition(lead, VerificationState.VERIFIED)
        lead.verification_token = None
        lead.verified_at = now
        self.db.commit()
        logger.info(f"[green]✅ Lead {lead.lead_id} verified[/green] via {lead.verification_method}")
        return True

    def _code_is_valid(self, lead: Lead, token: str) -> bool:
        if lead.verification_method == VerificationChannel.SMS.value:
            if settings.sms.test_mode:
                return bool(re.fullmatch(r"\d{%d}" % settings.verification.code_length, token or ""))
            try:
                return self.sms_client.check_code(lead.customer_phone or "", token)
            except Exception as e:
                logger.error(f"[red]❌ Twilio verification check error:[/red] {e}")
                raise ExternalServiceError("Failed to verify code with SMS provider")

        if not lead.verification_token or not token:
            return False
        return hmac.compare_digest(lead.verification_token, token)
