from .document_store import Collection, DocumentStore, DuplicateKeyError, Query
from .repository import AccountRepository, CommentRepository, PostRepository, Repository

__all__ = [
    "AccountRepository",
    "Collection",
    "CommentRepository",
    "DocumentStore",
    "DuplicateKeyError",
    "PostRepository",
    "Query",
    "Repository",
]
