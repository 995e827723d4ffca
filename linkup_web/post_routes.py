"""
FastAPI routes for posts and the comments under them.

Prefix: /api/v1/posts
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from linkup.auth import TokenClaims
from linkup.query import parse_query_string
from linkup.services.comment_service import CommentService
from linkup.services.post_service import PostService
from .auth_middleware import get_comment_service, get_post_service, require_login
from .schemas import CommentTextRequest, CreatePostRequest, UpdatePostRequest


router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    data: CreatePostRequest,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    post = await post_service.create(claims.account_id, data.text, data.is_private)
    return {
        "status": "success",
        "message": "Post created successfully",
        "data": post_service.posts.to_public(post),
    }


@router.get("")
async def get_timeline(
    request: Request,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    """Public posts plus the caller's private ones, newest first."""
    params = parse_query_string(request.query_params.multi_items())
    return await post_service.timeline(claims.account_id, params)


@router.get("/user")
async def get_own_posts(
    request: Request,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    params = parse_query_string(request.query_params.multi_items())
    return await post_service.author_posts(claims.account_id, params)


@router.put("/{post_id}")
async def update_post(
    post_id: str,
    data: UpdatePostRequest,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    post = await post_service.update(claims.account_id, post_id, data.text, data.is_private)
    return {
        "status": "success",
        "message": "Post updated successfully",
        "data": post_service.posts.to_public(post),
    }


@router.patch("/{post_id}/like")
async def like_post(
    post_id: str,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    post, liked = await post_service.toggle_like(claims.account_id, post_id)
    return {
        "status": "success",
        "message": "Post liked" if liked else "Post unliked",
        "likes_count": len(post.liker_ids),
        "data": await post_service.present(post),
    }


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    claims: TokenClaims = Depends(require_login),
    post_service: PostService = Depends(get_post_service),
) -> Dict[str, Any]:
    await post_service.delete(claims.account_id, post_id)
    return {"status": "success", "message": "Post deleted successfully"}


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    data: CommentTextRequest,
    claims: TokenClaims = Depends(require_login),
    comment_service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    comment = await comment_service.create(claims.account_id, post_id, data.text)
    return {
        "status": "success",
        "message": "Comment added to post successfully",
        "data": comment_service.comments.to_public(comment),
    }


@router.get("/{post_id}/comments")
async def get_post_comments(
    post_id: str,
    request: Request,
    claims: TokenClaims = Depends(require_login),
    comment_service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    params = parse_query_string(request.query_params.multi_items())
    return await comment_service.list_for_post(claims.account_id, post_id, params)
