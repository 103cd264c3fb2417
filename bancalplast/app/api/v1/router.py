"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from bancalplast.app.api.v1.endpoints import office, production

router = APIRouter()

# Production: pallet registration and editing
router.include_router(production.router)

# Office: trips, shipping and history cleanup
router.include_router(office.router)
