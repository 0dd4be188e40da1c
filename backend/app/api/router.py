"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from app.api.routes import (
    applicant, authorizer, accounts_payable, travel_agent, files
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(applicant.router)
api_router.include_router(authorizer.router)
api_router.include_router(accounts_payable.router)
api_router.include_router(travel_agent.router)
api_router.include_router(files.router)
