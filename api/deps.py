"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

import secrets
from typing import Optional
from fastapi import Depends, HTTPException, status, Header
from sqlalchemy.orm import Session

from config import settings
from database import get_db
import models
from models import MarkedBy


async def get_bearer_token(
    authorization: Optional[str] = Header(None)
) -> Optional[str]:
    """
    Bearer token from the Authorization header, if any
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def require_token(
    token: Optional[str] = Depends(get_bearer_token)
) -> str:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_current_account(
    token: str = Depends(require_token),
    db: Session = Depends(get_db)
) -> models.Account:
    """
    Resolve the signed-in account
    Raises HTTPException if the token is unknown or revoked
    """
    account = await services.get_auth_service().current_account(token, db=db)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account


async def get_role(
    x_role: Optional[str] = Header(None, alias="X-Role")
) -> MarkedBy:
    """
    Role the client is acting in; both roles share one account
    """
    if not x_role:
        return MarkedBy.PATIENT
    try:
        return MarkedBy(x_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown role: {x_role}",
        )


async def require_caretaker(
    role: MarkedBy = Depends(get_role)
) -> MarkedBy:
    if role != MarkedBy.CARETAKER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only caretakers can manage medications",
        )
    return role


async def require_sweep_token(
    x_sweep_token: Optional[str] = Header(None, alias="X-Sweep-Token")
) -> None:
    """
    Only the scheduler may trigger the missed-dose sweep
    Raises HTTPException when no secret is configured or the header does not match
    """
    if not settings.SWEEP_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sweep endpoint is not configured",
        )
    if not x_sweep_token or not secrets.compare_digest(x_sweep_token, settings.SWEEP_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sweep token",
        )


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_auth_service():
        from services.auth_service import auth_service
        return auth_service

    @staticmethod
    def get_medication_service():
        from services.medication_service import medication_service
        return medication_service

    @staticmethod
    def get_adherence_service():
        from services.adherence_service import adherence_service
        return adherence_service

    @staticmethod
    def get_notification_service():
        from services.notification_service import notification_service
        return notification_service

    @staticmethod
    def get_sweep_service():
        from services.sweep_service import sweep_service
        return sweep_service

    @staticmethod
    def get_log_broadcaster():
        from services.log_broadcaster import log_broadcaster
        return log_broadcaster

    @staticmethod
    def get_proof_photo_storage():
        from tools.storage import proof_photo_storage
        return proof_photo_storage


# Service dependency instances
services = ServiceDependency()
