"""
Main API router for v1 endpoints
"""
from fastapi import APIRouter

from pricemyfloor.api.v1.endpoints import billing, leads, retailers

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(leads.router, tags=["leads"])
api_router.include_router(billing.router, tags=["billing"])
api_router.include_router(retailers.router, tags=["retailers"])
