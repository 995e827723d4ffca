"""
FastAPI routes for individual comments.

Prefix: /api/v1/comments
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from linkup.auth import TokenClaims
from linkup.services.comment_service import CommentService
from .auth_middleware import get_comment_service, require_login
from .schemas import CommentTextRequest


router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str,
    data: CommentTextRequest,
    claims: TokenClaims = Depends(require_login),
    comment_service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    comment = await comment_service.update(claims.account_id, comment_id, data.text)
    return {
        "status": "success",
        "message": "Comment updated successfully",
        "data": comment_service.comments.to_public(comment),
    }


@router.patch("/{comment_id}/like")
async def like_comment(
    comment_id: str,
    claims: TokenClaims = Depends(require_login),
    comment_service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    comment, liked = await comment_service.toggle_like(claims.account_id, comment_id)
    return {
        "status": "success",
        "message": "Comment liked" if liked else "Comment unliked",
        "likes_count": len(comment.liker_ids),
        "data": comment_service.comments.to_public(comment),
    }


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    claims: TokenClaims = Depends(require_login),
    comment_service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    await comment_service.delete(claims.account_id, comment_id)
    return {"status": "success", "message": "Comment deleted successfully"}
