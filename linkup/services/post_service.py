"""Posts: creation, timeline, likes and cascading delete."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from ..models import Post
from ..query.factory import query_factory
from ..stores.document_store import Query
from ..stores.repository import AccountRepository, CommentRepository, PostRepository
from ..utils.exceptions import NotFoundError
from ..utils.logger import get_logger
from .likes import toggle_like
from .population import populate_people

logger = get_logger(__name__)

POST_NOT_FOUND = "Post not found"


def visible_to(account_id: str) -> Dict[str, Any]:
    """Public posts plus the viewer's own private ones."""
    return {"$or": [{"is_private": False}, {"author_id": account_id}]}


class PostService:
    def __init__(
        self,
        posts: PostRepository,
        comments: CommentRepository,
        accounts: AccountRepository,
        page_size: int,
    ):
        self.posts = posts
        self.comments = comments
        self.accounts = accounts
        self.page_size = page_size

    async def create(self, author_id: str, text: str, is_private: bool = False) -> Post:
        post = await self.posts.create(Post(author_id=author_id, text=text, is_private=is_private))
        logger.info("Post created", post_id=post.id, author_id=author_id)
        return post

    async def get_visible(self, account_id: str, post_id: str) -> Post:
        post = await self.posts.find_one({"$and": [{"id": post_id}, visible_to(account_id)]})
        if not post:
            raise NotFoundError(POST_NOT_FOUND)
        return post

    async def update(
        self,
        author_id: str,
        post_id: str,
        text: Optional[str] = None,
        is_private: Optional[bool] = None,
    ) -> Post:
        changes: Dict[str, Any] = {}
        if text is not None:
            changes["text"] = text
        if is_private is not None:
            changes["is_private"] = is_private
        # another author's post is reported as missing
        post = await self.posts.update({"id": post_id, "author_id": author_id}, changes)
        if not post:
            raise NotFoundError(POST_NOT_FOUND)
        return post

    async def toggle_like(self, account_id: str, post_id: str) -> Tuple[Post, bool]:
        post = await self.get_visible(account_id, post_id)
        return await toggle_like(self.posts, post, account_id, POST_NOT_FOUND)

    async def timeline(self, account_id: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        query = self.posts.find(visible_to(account_id)).sort("-created_at")
        return await self._populated_list(query, params)

    async def author_posts(self, account_id: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        query = self.posts.find({"author_id": account_id}).sort("-created_at")
        return await self._populated_list(query, params)

    async def _populated_list(self, query: Query, params: Mapping[str, Any]) -> Dict[str, Any]:
        result = await query_factory(self.posts, query, params, self.page_size)
        result["data"] = await populate_people(result["data"], self.accounts)
        return result

    async def present(self, post: Post) -> Dict[str, Any]:
        """Public view of one post with author and likers resolved."""
        populated = await populate_people([self.posts.to_public(post)], self.accounts)
        return populated[0]

    async def delete(self, author_id: str, post_id: str) -> int:
        """Delete the author's post and its comments; returns the number of comments removed."""
        post = await self.posts.delete({"id": post_id, "author_id": author_id})
        if not post:
            raise NotFoundError(POST_NOT_FOUND)
        removed = await self.comments.delete_many({"post_id": post_id})
        logger.info("Post deleted", post_id=post_id, comments_removed=removed)
        return removed
