"""
API Module
FastAPI routers for the DoseTrack application
"""

from api.auth import router as auth_router
from api.medications import router as medications_router
from api.logs import router as logs_router
from api.adherence import router as adherence_router
from api.notifications import router as notifications_router
from api.functions import router as functions_router

from api.deps import (
    get_db,
    get_bearer_token,
    require_token,
    get_current_account,
    get_role,
    require_caretaker,
    services,
)


__all__ = [
    # Routers
    "auth_router",
    "medications_router",
    "logs_router",
    "adherence_router",
    "notifications_router",
    "functions_router",
    # Dependencies
    "get_db",
    "get_bearer_token",
    "require_token",
    "get_current_account",
    "get_role",
    "require_caretaker",
    "services",
]


def include_routers(app):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(medications_router, prefix="/api/v1")
    app.include_router(logs_router, prefix="/api/v1")
    app.include_router(adherence_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(functions_router, prefix="/api/v1")
