"""Main API router aggregating all v1 endpoints."""

from fastapi import APIRouter

from socialsignals.api.v1 import jobs, profiles, scraping

api_router = APIRouter()

# Include sub-routers
api_router.include_router(scraping.router, prefix="/scraping", tags=["Scraping"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
