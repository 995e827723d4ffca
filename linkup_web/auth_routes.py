"""
FastAPI routes for authentication.

Prefix: /api/v1/auth
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from linkup.auth import AuthService, TokenClaims
from .auth_middleware import get_auth_service, require_login
from .schemas import LoginRequest, SignupRequest


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Register an account and mail its verification link."""
    account = await auth_service.signup(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password=data.password,
        job_title=data.job_title,
        base_url=str(request.base_url),
    )
    return {
        "status": "success",
        "message": (
            "Account successfully created. Please check your email to confirm "
            "your account before trying to login"
        ),
        "data": auth_service.accounts.to_public(account),
    }


@router.get("/verify-email/{token}")
async def verify_email(
    token: str, auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    account = await auth_service.verify_email(token)
    return {
        "status": "success",
        "message": "Email successfully verified",
        "data": auth_service.accounts.to_public(account),
    }


@router.get("/resend-email/{refresh_token}")
async def resend_verification_email(
    refresh_token: str,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    email = await auth_service.resend_verification(refresh_token, base_url=str(request.base_url))
    return {"status": "success", "message": f"New email sent to {email}"}


@router.post("/login")
async def login(
    data: LoginRequest, auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """
    Log in with email and password.

    Response:
        {"status": "success", "message": "Welcome <first name>", "token": "<jwt>"}
    """
    token, account = await auth_service.login(data.email, data.password)
    return {"status": "success", "message": f"Welcome {account.first_name}", "token": token}


@router.patch("/logout")
async def logout(
    claims: TokenClaims = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """End every session of the caller, this one included."""
    account = await auth_service.logout(claims)
    return {"status": "success", "message": f"{account.email} logged out successfully"}
