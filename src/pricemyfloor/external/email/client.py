"""
Resend transactional email REST API client
"""
import httpx
from typing import Dict, Any, Optional
from pricemyfloor.core.config import settings
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """
    Client for the Resend HTTP API.
    Handles authentication, the send request and error logging.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        from_address: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.email.base_url
        self.api_key = api_key if api_key is not None else settings.email.api_key
        self.from_address = from_address or settings.email.from_address
        self.timeout = settings.email.timeout
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        """Request headers with Bearer authentication"""
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def send_email(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        """
        Send one HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html: Rendered HTML body

        Returns:
            Resend response body (contains the message id)

        Raises:
            RuntimeError: If no API key is configured
            httpx.HTTPError: If the request fails
        """
        if not self.api_key:
            raise RuntimeError("Email service not configured - missing API key")

        url = f"{self.base_url.rstrip('/')}/emails"
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }

        try:
            logger.debug(f"[cyan]Sending email via Resend:[/cyan] {subject} -> {to}")
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._get_headers())
                response.raise_for_status()
                result = response.json()
                logger.info(f"[green]✅ Email sent:[/green] [cyan]{subject}[/cyan] to {to}")
                return result
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[red]❌ Resend rejected email:[/red] "
                f"[yellow]{e.response.status_code}[/yellow] - {e.response.text}"
            )
            raise
        except httpx.HTTPError as e:
            logger.error(f"[red]❌ HTTP error sending email:[/red] {str(e)}")
            raise
