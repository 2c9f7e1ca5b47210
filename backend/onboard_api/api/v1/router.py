"""API v1 router aggregator.

All v1 endpoint routers are included here and mounted at /api/v1.
"""

from fastapi import APIRouter

from onboard_api.api.v1 import onboard

router = APIRouter()

router.include_router(onboard.router, prefix="/onboard", tags=["onboard"])
