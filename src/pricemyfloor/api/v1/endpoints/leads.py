"""
Leads API endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends

from pricemyfloor.api.v1.dependencies import get_client_ip, get_user_agent
from pricemyfloor.core.dependencies import get_lead_service
from pricemyfloor.services.lead_service import LeadService
from pricemyfloor.utils.logging import get_logger
from pricemyfloor.schemas.leads import (
    DistributionReport,
    LeadStatusResponse,
    LeadSubmitRequest,
    LeadSubmitResponse,
    SendVerificationRequest,
    SendVerificationResponse,
    VerifyLeadRequest,
    VerifyLeadResponse,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("/leads/submit", response_model=LeadSubmitResponse)
async def submit_lead(
    payload: LeadSubmitRequest,
    client_ip: Optional[str] = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent),
    service: LeadService = Depends(get_lead_service),
):
    """
    Submit a quote request.

    The lead is stored as pending verification and a one-time code is sent
    through the requested channel. It is not distributed until verified.
    """
    result = await service.submit_lead(payload, client_ip=client_ip, user_agent=user_agent)
    return {"success": True, **result}


@router.post("/leads/send-verification", response_model=SendVerificationResponse)
async def send_verification(
    payload: SendVerificationRequest,
    service: LeadService = Depends(get_lead_service),
):
    """Send a new verification code, replacing any earlier one"""
    expires_at = await service.resend_verification(payload.lead_id, payload.method, payload.contact)
    return {
        "success": True,
        "lead_id": payload.lead_id,
        "method": payload.method,
        "expires_at": expires_at,
    }


@router.post("/leads/verify", response_model=VerifyLeadResponse)
async def verify_lead(
    payload: VerifyLeadRequest,
    service: LeadService = Depends(get_lead_service),
):
    """
    Verify a lead with its code and distribute it to matching retailers.

    Verifying an already verified lead succeeds without distributing again.
    """
    result = await service.verify_lead(payload.lead_id, payload.token.strip())
    message = "Lead already verified" if result["already_verified"] else "Lead verified successfully"
    return {"success": True, "message": message, **result}


@router.get("/leads/{lead_id}", response_model=LeadStatusResponse)
async def get_lead(
    lead_id: str,
    service: LeadService = Depends(get_lead_service),
):
    """Get the lifecycle state of a lead"""
    lead = service.get_lead(lead_id)
    return {
        "success": True,
        "lead_id": lead.lead_id,
        "status": lead.status,
        "verification_status": lead.verification_status,
        "verification_method": lead.verification_method,
        "verified_at": lead.verified_at,
        "brand_requested": lead.brand_requested,
        "square_footage": lead.square_footage,
        "created_at": lead.created_at,
    }


@router.post("/leads/{lead_id}/distribute", response_model=DistributionReport)
async def distribute_lead(
    lead_id: str,
    service: LeadService = Depends(get_lead_service),
):
    """Re-run distribution for a verified lead; retailers already served are skipped"""
    report = await service.distribute_lead(lead_id)
    return {"success": True, **report}


@router.post("/leads/{lead_id}/cancel", response_model=LeadStatusResponse)
async def cancel_lead(
    lead_id: str,
    service: LeadService = Depends(get_lead_service),
):
    """Cancel a pending or verified lead"""
    lead = service.cancel_lead(lead_id)
    return {
        "success": True,
        "lead_id": lead.lead_id,
        "status": lead.status,
        "verification_status": lead.verification_status,
        "verification_method": lead.verification_method,
        "verified_at": lead.verified_at,
        "brand_requested": lead.brand_requested,
        "square_footage": lead.square_footage,
        "created_at": lead.created_at,
    }
