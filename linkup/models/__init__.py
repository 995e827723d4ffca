from .account import Account, AccountRole
from .comment import Comment
from .post import Post

__all__ = ["Account", "AccountRole", "Comment", "Post"]
