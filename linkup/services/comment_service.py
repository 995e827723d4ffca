"""Comments on posts."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from ..models import Comment
from ..query.factory import query_factory
from ..stores.repository import CommentRepository
from ..utils.exceptions import NotFoundError
from ..utils.logger import get_logger
from .likes import toggle_like
from .post_service import PostService

logger = get_logger(__name__)

COMMENT_NOT_FOUND = "Comment not found"


class CommentService:
    def __init__(self, comments: CommentRepository, posts: PostService, page_size: int):
        self.comments = comments
        self.posts = posts
        self.page_size = page_size

    async def create(self, author_id: str, post_id: str, text: str) -> Comment:
        await self.posts.get_visible(author_id, post_id)
        comment = await self.comments.create(Comment(author_id=author_id, post_id=post_id, text=text))
        logger.info("Comment created", comment_id=comment.id, post_id=post_id)
        return comment

    async def list_for_post(
        self, account_id: str, post_id: str, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Comments of one post. A post that no longer exists simply has no
        comments; a private post of someone else is reported as missing.
        """
        post = await self.posts.posts.get(post_id)
        if post and post.is_private and post.author_id != account_id:
            raise NotFoundError("Post not found")
        query = self.comments.find({"post_id": post_id})
        return await query_factory(self.comments, query, params, self.page_size)

    async def update(self, author_id: str, comment_id: str, text: str) -> Comment:
        comment = await self.comments.update({"id": comment_id, "author_id": author_id}, {"text": text})
        if not comment:
            raise NotFoundError(COMMENT_NOT_FOUND)
        return comment

    async def toggle_like(self, account_id: str, comment_id: str) -> Tuple[Comment, bool]:
        comment = await self.comments.get(comment_id)
        if not comment:
            raise NotFoundError(COMMENT_NOT_FOUND)
        await self.posts.get_visible(account_id, comment.post_id)
        return await toggle_like(self.comments, comment, account_id, COMMENT_NOT_FOUND)

    async def delete(self, author_id: str, comment_id: str) -> Comment:
        comment = await self.comments.delete({"id": comment_id, "author_id": author_id})
        if not comment:
            raise NotFoundError(COMMENT_NOT_FOUND)
        logger.info("Comment deleted", comment_id=comment_id)
        return comment
