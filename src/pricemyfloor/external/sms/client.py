"""
Twilio Verify client for SMS one-time codes
"""
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from pricemyfloor.core.config import settings
from pricemyfloor.utils.helpers import format_phone_e164
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)

# Twilio error codes worth a specific message
_TWILIO_ERRORS = {
    60200: "Invalid phone number format",
    60203: "Max send attempts reached for this phone number",
    20404: "Twilio Verify service not found",
    20003: "Twilio authentication failed",
}


class SMSVerificationClient:
    """
    Sends and checks SMS codes through a Twilio Verify service.
    Twilio generates and stores the code; we only relay it.
    """

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        service_sid: Optional[str] = None,
    ):
        self.account_sid = account_sid or settings.sms.account_sid
        self.auth_token = auth_token or settings.sms.auth_token
        self.service_sid = service_sid or settings.sms.verify_service_sid
        self._client: Optional[Client] = None

    def _get_service(self):
        if not self.account_sid or not self.auth_token:
            raise RuntimeError("SMS service not configured - missing Twilio Account SID or Auth Token")
        if not self.service_sid:
            raise RuntimeError("SMS service not configured - missing Twilio Verify Service SID")
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client.verify.v2.services(self.service_sid)

    def send_code(self, phone: str) -> str:
        """
        Start an SMS verification.

        Returns:
            Twilio verification status (normally "pending")

        Raises:
            RuntimeError: If Twilio is not configured or rejects the request
        """
        to = format_phone_e164(phone)
        try:
            verification = self._get_service().verifications.create(to=to, channel="sms")
        except TwilioRestException as e:
            message = _TWILIO_ERRORS.get(e.code, f"Twilio error ({e.code})")
            logger.error(f"[red]❌ Twilio verification send failed:[/red] {message}: {e.msg}")
            raise RuntimeError(f"{message}: {e.msg}") from e

        logger.info(f"[green]SMS verification sent[/green] to {to} [dim](status={verification.status})[/dim]")
        return verification.status

    def check_code(self, phone: str, code: str) -> bool:
        """
        Check a code against Twilio Verify.

        Returns:
            True only when Twilio reports the verification as approved
        """
        to = format_phone_e164(phone)
        try:
            check = self._get_service().verification_checks.create(to=to, code=code)
        except TwilioRestException as e:
            # 20404 here means no pending verification (expired or already used)
            logger.warning(f"[yellow]Twilio verification check failed:[/yellow] ({e.code}) {e.msg}")
            return False

        logger.debug(f"[dim]Twilio verification check status:[/dim] {check.status}")
        return check.status == "approved"
