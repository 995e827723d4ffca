"""
JSON-file document store.

Each collection lives in <data_dir>/<name>.json as {"documents": [...]}.
Writes go through a temp file and an atomic move, and every
single-document operation runs under the collection's lock, so a reader
never sees a half-applied update. The locks live in this process, so one
data directory must be served by a single process. Queries use a small
Mongo-style predicate language:

    {"field": value}                          equality (membership for arrays)
    {"field": {"$gte": "25", "$lt": "40"}}    comparison operators
    {"field": {"$in": [...]}}                 any-of
    {"field": {"$regex": "abc", "$options": "i"}}
    {"$and": [...]}, {"$or": [...]}

String operands are cast to the stored value's type before comparing, the
way a schema-aware driver would cast query-string input. Clauses naming
fields outside the collection's schema are dropped (strict query).
"""

from __future__ import annotations

import copy
import json
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from fastapi.concurrency import run_in_threadpool

from ..utils.exceptions import ConflictError, UpstreamError
from ..utils.logger import get_logger

logger = get_logger(__name__)

Predicate = Dict[str, Any]
SortSpec = List[Tuple[str, int]]

COMPARISON_OPERATORS = ("$eq", "$ne", "$gt", "$gte", "$lt", "$lte")

_PATH_LOCKS: Dict[str, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        if key not in _PATH_LOCKS:
            _PATH_LOCKS[key] = threading.RLock()
        return _PATH_LOCKS[key]


class DuplicateKeyError(ConflictError):
    """Insert or update would break a unique field"""


# --- predicate evaluation ---------------------------------------------------

def _cast(operand: Any, reference: Any) -> Any:
    """Cast a string operand to the type of the stored value it is compared with."""
    if not isinstance(operand, str) or reference is None:
        return operand
    if isinstance(reference, bool):
        lowered = operand.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        return operand
    if isinstance(reference, int):
        try:
            return int(operand)
        except ValueError:
            try:
                return float(operand)
            except ValueError:
                return operand
    if isinstance(reference, float):
        try:
            return float(operand)
        except ValueError:
            return operand
    return operand


def _compare_scalar(op: str, value: Any, operand: Any, options: str = "") -> bool:
    if op == "$in":
        items = operand if isinstance(operand, list) else [operand]
        return any(_compare_scalar("$eq", value, item) for item in items)
    if op == "$regex":
        if not isinstance(value, str):
            return False
        flags = re.IGNORECASE if "i" in options else 0
        try:
            return re.search(str(operand), value, flags) is not None
        except re.error:
            return False

    operand = _cast(operand, value)
    if op == "$eq":
        return value == operand
    if op == "$ne":
        return value != operand
    if value is None:
        return False
    try:
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        return False
    # unknown operator matches nothing
    return False


def _compare(op: str, value: Any, operand: Any, options: str = "") -> bool:
    if isinstance(value, list):
        if op == "$ne":
            return value != operand and not any(
                _compare_scalar("$eq", item, operand) for item in value
            )
        if op == "$eq" and value == operand:
            return True
        return any(_compare_scalar(op, item, operand, options) for item in value)
    return _compare_scalar(op, value, operand, options)


def _is_operator_object(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(str(key).startswith("$") for key in condition)
    )


def _match_field(value: Any, condition: Any) -> bool:
    if _is_operator_object(condition):
        options = str(condition.get("$options", ""))
        return all(
            _compare(op, value, operand, options)
            for op, operand in condition.items()
            if op != "$options"
        )
    if isinstance(condition, list) and not isinstance(value, list):
        return _compare("$in", value, condition)
    return _compare("$eq", value, condition)


def matches(document: Dict[str, Any], predicate: Optional[Predicate]) -> bool:
    """True when the document satisfies every clause of the predicate."""
    if not predicate:
        return True
    for key, condition in predicate.items():
        if key == "$and":
            if not all(matches(document, clause) for clause in condition):
                return False
        elif key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
        elif key.startswith("$"):
            return False
        elif not _match_field(document.get(key), condition):
            return False
    return True


def parse_sort(spec: Union[str, Dict[str, int], Sequence[Tuple[str, int]], None]) -> SortSpec:
    """Parse "a -b" (or {"a": 1, "b": -1}) into [("a", 1), ("b", -1)]."""
    if not spec:
        return []
    if isinstance(spec, dict):
        return [(field, -1 if direction < 0 else 1) for field, direction in spec.items()]
    if isinstance(spec, str):
        keys: SortSpec = []
        for token in spec.split():
            if token.startswith("-"):
                if token[1:]:
                    keys.append((token[1:], -1))
            else:
                keys.append((token.lstrip("+"), 1))
        return keys
    return [(field, direction) for field, direction in spec]


def _sort_key(value: Any) -> Tuple[int, Any]:
    # missing values order first ascending, last descending
    return (0, "") if value is None else (1, value)


def project(document: Dict[str, Any], projection: Optional[str]) -> Dict[str, Any]:
    """Apply "a b" inclusion and "-c" exclusion. Inclusion always keeps id."""
    if not projection:
        return document
    tokens = projection.split()
    excluded = {token[1:] for token in tokens if token.startswith("-")}
    included = {token for token in tokens if not token.startswith("-")}
    if included:
        included.add("id")
        document = {k: v for k, v in document.items() if k in included}
    return {k: v for k, v in document.items() if k not in excluded}


# --- collections ------------------------------------------------------------

class Query:
    """Chainable, lazily executed find over one collection."""

    def __init__(self, collection: "Collection", predicate: Optional[Predicate] = None):
        self.collection = collection
        self._clauses: List[Predicate] = [predicate] if predicate else []
        self._sort: SortSpec = []
        self._projection: Optional[str] = None
        self._skip = 0
        self._limit = 0

    @property
    def predicate(self) -> Predicate:
        if not self._clauses:
            return {}
        if len(self._clauses) == 1:
            return self._clauses[0]
        return {"$and": list(self._clauses)}

    @property
    def sort_spec(self) -> SortSpec:
        return list(self._sort)

    @property
    def projection(self) -> Optional[str]:
        return self._projection

    @property
    def skip_count(self) -> int:
        return self._skip

    @property
    def limit_count(self) -> int:
        return self._limit

    def find(self, predicate: Optional[Predicate]) -> "Query":
        """AND the predicate into the query."""
        if predicate:
            self._clauses.append(predicate)
        return self

    def sort(self, spec: Union[str, Dict[str, int], Sequence[Tuple[str, int]], None]) -> "Query":
        """Replace the sort order."""
        self._sort = parse_sort(spec)
        return self

    def select(self, projection: Optional[str]) -> "Query":
        self._projection = projection or None
        return self

    def skip(self, count: int) -> "Query":
        self._skip = max(int(count), 0)
        return self

    def limit(self, count: int) -> "Query":
        self._limit = max(int(count), 0)
        return self

    def _run(self) -> List[Dict[str, Any]]:
        predicate = self.collection.strip_unknown(self.predicate)
        results = [doc for doc in self.collection.read_all() if matches(doc, predicate)]
        for field, direction in reversed(self._sort):
            results.sort(key=lambda doc: _sort_key(doc.get(field)), reverse=direction < 0)
        if self._skip:
            results = results[self._skip:]
        if self._limit:
            results = results[: self._limit]
        return [project(doc, self._projection) for doc in results]

    async def exec(self) -> List[Dict[str, Any]]:
        """Run the query and return plain document copies."""
        return await run_in_threadpool(self._run)


class Collection:
    """One JSON file of documents keyed by "id"."""

    def __init__(
        self,
        name: str,
        path: Path,
        fields: Iterable[str],
        unique: Iterable[str] = (),
    ):
        self.name = name
        self.path = Path(path)
        self.fields = frozenset(fields) | {"id"}
        self.unique = tuple(unique)
        self._lock = _lock_for(self.path)

    # file access (callers hold no lock; these take it)

    def read_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._load()

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Failed to read collection", collection=self.name, error=str(e))
            raise UpstreamError(f"Storage error while reading {self.name}")
        return list(raw.get("documents", []))

    def _save(self, documents: List[Dict[str, Any]]) -> None:
        """Atomically write the collection file."""
        payload = {"documents": documents}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", dir=str(self.path.parent), delete=False, encoding="utf-8"
            ) as tf:
                json.dump(payload, tf, indent=2, ensure_ascii=False, default=str)
                temp_path = Path(tf.name)
            try:
                shutil.move(str(temp_path), str(self.path))
            except Exception:
                if temp_path.exists():
                    temp_path.unlink()
                raise
        except OSError as e:
            logger.error("Failed to write collection", collection=self.name, error=str(e))
            raise UpstreamError(f"Storage error while writing {self.name}")

    def strip_unknown(self, predicate: Optional[Predicate]) -> Predicate:
        """Drop clauses on fields the schema does not know."""
        if not predicate:
            return {}
        cleaned: Predicate = {}
        for key, condition in predicate.items():
            if key in ("$and", "$or"):
                cleaned[key] = [self.strip_unknown(clause) for clause in condition]
            elif key.startswith("$") or key in self.fields:
                cleaned[key] = condition
        return cleaned

    def _check_unique(self, documents: List[Dict[str, Any]], candidate: Dict[str, Any]) -> None:
        for field in self.unique:
            value = candidate.get(field)
            if value is None:
                continue
            for doc in documents:
                if doc.get("id") != candidate.get("id") and doc.get(field) == value:
                    raise DuplicateKeyError(f"{self.name}.{field} must be unique")

    # synchronous operations, run in the thread pool by the async wrappers

    def _insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            documents = self._load()
            if any(doc.get("id") == document.get("id") for doc in documents):
                raise DuplicateKeyError(f"{self.name}.id must be unique")
            self._check_unique(documents, document)
            documents.append(copy.deepcopy(document))
            self._save(documents)
        return copy.deepcopy(document)

    def _update_one(
        self,
        predicate: Predicate,
        changes: Optional[Dict[str, Any]],
        add_to_set: Optional[Dict[str, Any]],
        pull: Optional[Dict[str, Any]],
        unset: Sequence[str],
    ) -> Optional[Dict[str, Any]]:
        predicate = self.strip_unknown(predicate)
        with self._lock:
            documents = self._load()
            for index, doc in enumerate(documents):
                if not matches(doc, predicate):
                    continue
                updated = copy.deepcopy(doc)
                updated.update(changes or {})
                for field, value in (add_to_set or {}).items():
                    items = list(updated.get(field) or [])
                    if value not in items:
                        items.append(value)
                    updated[field] = items
                for field, value in (pull or {}).items():
                    updated[field] = [item for item in (updated.get(field) or []) if item != value]
                for field in unset:
                    updated.pop(field, None)
                self._check_unique(documents, updated)
                documents[index] = updated
                self._save(documents)
                return copy.deepcopy(updated)
        return None

    def _delete(self, predicate: Predicate, many: bool) -> List[Dict[str, Any]]:
        predicate = self.strip_unknown(predicate)
        with self._lock:
            documents = self._load()
            kept: List[Dict[str, Any]] = []
            removed: List[Dict[str, Any]] = []
            for doc in documents:
                if matches(doc, predicate) and (many or not removed):
                    removed.append(doc)
                else:
                    kept.append(doc)
            if removed:
                self._save(kept)
        return removed

    # async API

    def find(self, predicate: Optional[Predicate] = None) -> Query:
        return Query(self, predicate)

    async def find_one(self, predicate: Predicate) -> Optional[Dict[str, Any]]:
        results = await Query(self, predicate).limit(1).exec()
        return results[0] if results else None

    async def find_by_id(self, document_id: str) -> Optional[Dict[str, Any]]:
        return await self.find_one({"id": document_id})

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        return len(await Query(self, predicate).exec())

    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return await run_in_threadpool(self._insert_one, document)

    async def update_one(
        self,
        predicate: Predicate,
        changes: Optional[Dict[str, Any]] = None,
        *,
        add_to_set: Optional[Dict[str, Any]] = None,
        pull: Optional[Dict[str, Any]] = None,
        unset: Sequence[str] = (),
    ) -> Optional[Dict[str, Any]]:
        """Update the first matching document; returns it after the update, or None."""
        return await run_in_threadpool(
            self._update_one, predicate, changes, add_to_set, pull, tuple(unset)
        )

    async def delete_one(self, predicate: Predicate) -> Optional[Dict[str, Any]]:
        removed = await run_in_threadpool(self._delete, predicate, False)
        return removed[0] if removed else None

    async def delete_many(self, predicate: Predicate) -> int:
        removed = await run_in_threadpool(self._delete, predicate, True)
        return len(removed)


class DocumentStore:
    """Hands out collections rooted at one data directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._collections: Dict[str, Collection] = {}

    def collection(self, name: str, fields: Iterable[str], unique: Iterable[str] = ()) -> Collection:
        if name not in self._collections:
            self._collections[name] = Collection(
                name, self.data_dir / f"{name}.json", fields, unique
            )
        return self._collections[name]
