"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from covidwatch.api.endpoints import markers, pages, users

api_router = APIRouter()

# Login, logout, signup, check-in, history
api_router.include_router(users.router)

# Session status, profile, redirects
api_router.include_router(pages.router)

# Hotspot map markers
api_router.include_router(markers.router)
