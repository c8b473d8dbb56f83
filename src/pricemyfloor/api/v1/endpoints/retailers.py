"""
Retailer account API endpoints
"""
from fastapi import APIRouter, Depends, Query

from pricemyfloor.core.dependencies import get_billing_service
from pricemyfloor.services.billing_service import BillingService
from pricemyfloor.schemas.billing import CreditBalanceResponse, DistributionListResponse

router = APIRouter(prefix="/retailers")


@router.get("/{retailer_id}/credits", response_model=CreditBalanceResponse)
async def get_credits(
    retailer_id: int,
    service: BillingService = Depends(get_billing_service),
):
    """Current prepaid lead credit balance"""
    return {"success": True, **service.get_credit_balance(retailer_id)}


@router.get("/{retailer_id}/distributions", response_model=DistributionListResponse)
async def get_distributions(
    retailer_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: BillingService = Depends(get_billing_service),
):
    """Leads delivered to a retailer, newest first"""
    distributions = service.list_distributions(retailer_id, skip=skip, limit=limit)
    return {
        "success": True,
        "retailer_id": retailer_id,
        "skip": skip,
        "limit": limit,
        "total": len(distributions),
        "distributions": [
            {
                "id": d.id,
                "lead_id": d.lead.lead_id,
                "lead_price": float(d.lead_price),
                "charge_amount": float(d.charge_amount),
                "payment_method": d.payment_method,
                "was_paid": d.was_paid,
                "status": d.status,
                "brand_matched": d.brand_matched,
                "sent_at": d.sent_at,
            }
            for d in distributions
        ],
    }
