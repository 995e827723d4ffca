"""
Generic repository over the document store.

Repository[ModelT] is implemented once; each entity gets a small subclass
binding its model, collection name, search field and hidden fields.
Services receive typed models back and hand plain change-set dicts in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from ..models import Account, Comment, Post
from ..utils.text import slugify
from .document_store import Collection, DocumentStore, Predicate, Query

ModelT = TypeVar("ModelT", bound=BaseModel)


class Repository(Generic[ModelT]):
    """Typed access to one collection."""

    model: Type[ModelT]
    collection_name: str
    search_field: str = "name"
    hidden_fields: Sequence[str] = ()
    unique_fields: Sequence[str] = ()
    is_feed: bool = False

    def __init__(self, store: DocumentStore):
        fields = [name for name in self.model.model_fields if name not in self.hidden_fields]
        # hidden fields are stored but can never be queried on from outside
        self._filterable = frozenset(fields)
        self.collection: Collection = store.collection(
            self.collection_name,
            self.model.model_fields.keys(),
            unique=self.unique_fields,
        )

    @property
    def filterable_fields(self) -> frozenset:
        return self._filterable

    def _to_document(self, entity: ModelT) -> Dict[str, Any]:
        return entity.model_dump(mode="json")

    def _to_model(self, document: Optional[Dict[str, Any]]) -> Optional[ModelT]:
        if document is None:
            return None
        return self.model(**document)

    def normalize_search(self, term: str) -> str:
        """Map a client search term onto the form stored in search_field."""
        return term

    def public(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Drop hidden fields from a document about to leave the service."""
        return {k: v for k, v in document.items() if k not in self.hidden_fields}

    def to_public(self, entity: ModelT) -> Dict[str, Any]:
        return self.public(self._to_document(entity))

    def find(self, base: Optional[Predicate] = None) -> Query:
        """Start a list query narrowed to the base predicate."""
        return self.collection.find(base)

    async def get(self, entity_id: str) -> Optional[ModelT]:
        return self._to_model(await self.collection.find_by_id(entity_id))

    async def find_one(self, predicate: Predicate) -> Optional[ModelT]:
        return self._to_model(await self.collection.find_one(predicate))

    async def create(self, entity: ModelT) -> ModelT:
        return self._to_model(await self.collection.insert_one(self._to_document(entity)))

    async def update(
        self,
        predicate: Predicate,
        changes: Optional[Dict[str, Any]] = None,
        *,
        add_to_set: Optional[Dict[str, Any]] = None,
        pull: Optional[Dict[str, Any]] = None,
        unset: Iterable[str] = (),
    ) -> Optional[ModelT]:
        """Apply a change-set to the first match and return the updated entity."""
        changes = dict(changes or {})
        changes["updated_at"] = datetime.utcnow().isoformat()
        document = await self.collection.update_one(
            predicate, changes, add_to_set=add_to_set, pull=pull, unset=tuple(unset)
        )
        return self._to_model(document)

    async def delete(self, predicate: Predicate) -> Optional[ModelT]:
        return self._to_model(await self.collection.delete_one(predicate))

    async def delete_many(self, predicate: Predicate) -> int:
        return await self.collection.delete_many(predicate)

    async def find_all(self, predicate: Optional[Predicate] = None) -> List[ModelT]:
        return [self.model(**doc) for doc in await self.collection.find(predicate).exec()]


class AccountRepository(Repository[Account]):
    model = Account
    collection_name = "accounts"
    search_field = "slug"
    hidden_fields = ("password_hash", "password_reset_code")
    unique_fields = ("email",)

    def normalize_search(self, term: str) -> str:
        # "Jane Doe" has to match the stored slug "jane-doe"
        return slugify(term)

    async def get_by_email(self, email: str) -> Optional[Account]:
        return await self.find_one({"email": email.strip().lower()})


class PostRepository(Repository[Post]):
    model = Post
    collection_name = "posts"
    search_field = "text"
    is_feed = True


class CommentRepository(Repository[Comment]):
    model = Comment
    collection_name = "comments"
    search_field = "text"
    is_feed = True
