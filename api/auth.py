"""
Auth API Router
Endpoints for sign-up, sign-in and sign-out
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_current_account, require_token, services
from api.schemas.auth import (
    SignUpRequest,
    SignInRequest,
    AccountResponse,
    SessionResponse,
    SignOutResponse,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _session_response(auth_session: models.AuthSession) -> SessionResponse:
    return SessionResponse(
        token=auth_session.token,
        account=AccountResponse.model_validate(auth_session.account)
    )


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: SignUpRequest,
    db: Session = Depends(get_db)
):
    """
    Create an account and sign in

    - **email**: Login email, also where missed-dose emails are sent
    - **password**: At least 6 characters
    - **name**: Display name
    """
    auth_service = services.get_auth_service()
    auth_session = await auth_service.sign_up(request.email, request.password, name=request.name, db=db)
    return _session_response(auth_session)


@router.post("/signin", response_model=SessionResponse)
async def sign_in(
    request: SignInRequest,
    db: Session = Depends(get_db)
):
    """
    Sign in with email and password
    """
    auth_service = services.get_auth_service()
    auth_session = await auth_service.sign_in(request.email, request.password, db=db)
    return _session_response(auth_session)


@router.post("/signout", response_model=SignOutResponse)
async def sign_out(
    token: str = Depends(require_token),
    db: Session = Depends(get_db)
):
    auth_service = services.get_auth_service()
    signed_out = await auth_service.sign_out(token, db=db)
    return SignOutResponse(signed_out=signed_out)


@router.get("/me", response_model=AccountResponse)
async def get_me(
    account: models.Account = Depends(get_current_account)
):
    """
    Get the signed-in account
    """
    return account
