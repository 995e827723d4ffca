"""
FastAPI routes for accounts.

Prefix: /api/v1/users
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from linkup.auth import AuthService, TokenClaims
from linkup.query import parse_query_string
from linkup.services.account_service import AccountChangeSet, AccountService
from .auth_middleware import get_account_service, get_auth_service, require_admin, require_login
from .schemas import BlockRequest, ResetCodeRequest, ResetPasswordRequest, UpdateAccountRequest


router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("")
async def list_accounts(
    request: Request,
    claims: TokenClaims = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    """Admin only. Supports page, sort, fields, search and field filters."""
    params = parse_query_string(request.query_params.multi_items())
    return await account_service.list_accounts(params)


@router.put("")
async def update_account(
    data: UpdateAccountRequest,
    claims: TokenClaims = Depends(require_login),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    change_set = AccountChangeSet(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        job_title=data.job_title,
        password=data.password,
        deactivated=data.deactivated,
    )
    account = await account_service.update(claims.account_id, change_set)
    return {
        "status": "success",
        "message": f"{account.first_name}'s data updated successfully",
        "data": account_service.accounts.to_public(account),
    }


@router.delete("")
async def delete_account(
    claims: TokenClaims = Depends(require_login),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    await account_service.delete(claims.account_id)
    return {"status": "success", "message": "Your account successfully deleted"}


@router.get("/profile")
async def get_profile(
    claims: TokenClaims = Depends(require_login),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account = await account_service.get(claims.account_id)
    return {"status": "success", "data": account_service.accounts.to_public(account)}


@router.patch("/reset-code")
async def send_reset_code(
    data: ResetCodeRequest, auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    account = await auth_service.send_reset_code(data.email)
    return {"status": "success", "message": f"Reset code has been sent to {account.email}."}


@router.patch("/reset-password")
async def reset_password(
    data: ResetPasswordRequest, auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    await auth_service.reset_password(data.email, data.code, data.password)
    return {
        "status": "success",
        "message": "Your password has been successfully reset. Please try to login",
    }


@router.patch("/{account_id}/block")
async def set_blocked(
    account_id: str,
    data: BlockRequest,
    claims: TokenClaims = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    account = await account_service.set_blocked(account_id, data.blocked)
    state = "blocked" if account.blocked else "unblocked"
    return {
        "status": "success",
        "message": f"{account.email} {state}",
        "data": account_service.accounts.to_public(account),
    }
