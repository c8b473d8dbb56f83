"""
API-specific dependencies for v1 endpoints
"""
from typing import Optional

from fastapi import Header, Request

from pricemyfloor.core.config import settings


def get_client_ip(request: Request, x_forwarded_for: Optional[str] = Header(None)) -> Optional[str]:
    """
    Client address for rate limiting.
    X-Forwarded-For is only believed when the direct peer is a configured
    proxy; its first entry is then the original client.
    """
    peer = request.client.host if request.client else None
    if x_forwarded_for and peer in settings.submission.trusted_proxies:
        return x_forwarded_for.split(",")[0].strip() or peer
    return peer


def get_user_agent(user_agent: Optional[str] = Header(None)) -> Optional[str]:
    return user_agent
