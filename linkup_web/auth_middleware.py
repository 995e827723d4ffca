"""
Auth dependencies for protected routes.

require_login() reads the session token from the Authorization header
(Bearer) or the bare "token" header, validates it through the auth service
and returns the decoded claims. require_role() layers the role gate on top.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from linkup.auth import AuthService, TokenClaims, authorize
from linkup.services.account_service import AccountService
from linkup.services.comment_service import CommentService
from linkup.services.post_service import PostService
from linkup.utils.exceptions import AuthError


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def get_comment_service(request: Request) -> CommentService:
    return request.app.state.comment_service


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    token = request.headers.get("token")
    if token:
        return token.strip()
    return None


async def require_login(
    request: Request, auth_service: AuthService = Depends(get_auth_service)
) -> TokenClaims:
    """Dependency for protected routes. 401 when no token is supplied."""
    token = _extract_token(request)
    if not token:
        raise AuthError("Token is required")
    return await auth_service.validate(token)


def require_role(*roles: str):
    """Dependency factory for role-based access control"""
    async def role_checker(claims: TokenClaims = Depends(require_login)) -> TokenClaims:
        authorize(claims.role, roles)
        return claims

    return role_checker


require_admin = require_role("admin")
