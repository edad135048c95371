from fastapi import APIRouter

from citizen_portal.api.routes import (
    applications,
    chairman,
    citizens,
    confirmations,
    eligibility,
    official,
)

api_router = APIRouter()
api_router.include_router(applications.router)
api_router.include_router(official.router)
api_router.include_router(chairman.router)
api_router.include_router(confirmations.router)
api_router.include_router(eligibility.router)
api_router.include_router(citizens.router)
