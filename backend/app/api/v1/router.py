"""API v1 router aggregator.

URL structure with /api/v1 prefix. All v1 endpoint routers are included
here. The realtime hub (api/v1/realtime.py) is mounted at the application
root by main.py because clients connect to /hubs/notifications.
"""

from fastapi import APIRouter

from app.api.v1 import notifications, onboarding

router = APIRouter()

# =============================================================================
# Core Resource Routers
# =============================================================================

router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
