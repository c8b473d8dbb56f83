"""
Notification service for verification codes and new-lead alerts
"""
from typing import Optional

from pricemyfloor.database.models import Lead, LeadDistribution, PaidVia, Retailer
from pricemyfloor.external.email.client import EmailClient
from pricemyfloor.utils.logging import get_logger
from pricemyfloor.utils.template_manager import TemplateManager, get_template_manager

logger = get_logger(__name__)


class NotificationService:
    """Renders email templates and sends them through the email client"""

    def __init__(
        self,
        email_client: Optional[EmailClient] = None,
        templates: Optional[TemplateManager] = None,
    ):
        self.email_client = email_client or EmailClient()
        self.templates = templates or get_template_manager()

    async def send_verification_code(self, email: str, code: str, ttl_minutes: int) -> None:
        """
        Email a one-time code to a customer.

        Raises:
            Exception: Whatever the email client raises; the caller decides
        """
        message = self.templates.render("verification_code", code=code, ttl_minutes=ttl_minutes)
        await self.email_client.send_email(email, message["subject"], message["html"])

    async def notify_retailer(
        self,
        retailer: Retailer,
        lead: Lead,
        distribution: LeadDistribution,
    ) -> bool:
        """
        Tell a retailer about a delivered lead.

        Best effort: failures are logged and reported as False, never raised,
        so a lost email cannot undo a committed distribution or charge.
        """
        if distribution.payment_method == PaidVia.CREDIT.value:
            payment_text = "Paid via lead credits"
        else:
            payment_text = f"Charged ${distribution.charge_amount:.2f} CAD"

        try:
            message = self.templates.render(
                "new_lead",
                retailer_name=retailer.business_name,
                customer_name=lead.customer_name,
                customer_email=lead.customer_email,
                customer_phone=lead.customer_phone or "Not provided",
                postal_code=lead.postal_code,
                brand=lead.brand_requested,
                project_size=lead.project_size or f"{lead.square_footage} sq ft",
                installation="Supply & Installation" if lead.installation_required else "Supply Only",
                timeline=lead.timeline or "Not specified",
                notes=lead.notes or "None",
                payment_text=payment_text,
            )
            await self.email_client.send_email(retailer.email, message["subject"], message["html"])
            return True
        except Exception as e:
            logger.error(
                f"[red]❌ Failed to notify retailer {retailer.id} about lead {lead.lead_id}:[/red] {e}"
            )
            return False
