"""
Query language interpreter for list endpoints.

Turns the request query string into a configured store query. Stages run
in a fixed order: filter, sort, search, select, paginate.

    ?age[gte]=25&sort=-created_at,text&fields=text,created_at&search=hi&page=2

Reserved keys are page, sort, fields and search; every other key is a
field clause. An operator key is rewritten to the store operator only when
it is exactly one of eq, gt, gte, lt, lte, ne; anything else stays a
literal and simply fails to match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..stores.document_store import Query
from ..utils.exceptions import ValidationError

RESERVED_KEYS = frozenset({"page", "sort", "fields", "search"})
COMPARISON_KEYWORDS = frozenset({"eq", "gt", "gte", "lt", "lte", "ne"})
DEFAULT_PAGE_SIZE = 2

_BRACKET_KEY = re.compile(r"^([^\[\]]+)\[([^\[\]]*)\]$")


def _append(target: Dict[str, Any], key: str, value: Any) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def parse_query_string(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Parse query-string pairs the way qs does for one level of brackets.

    [("age[gte]", "25"), ("tag", "a"), ("tag", "b")]
        -> {"age": {"gte": "25"}, "tag": ["a", "b"]}
    """
    parsed: Dict[str, Any] = {}
    for raw_key, value in items:
        match = _BRACKET_KEY.match(raw_key)
        if not match:
            _append(parsed, raw_key, value)
            continue
        name, operator = match.groups()
        if operator == "":
            # field[]=a&field[]=b
            existing = parsed.get(name)
            if existing is None:
                parsed[name] = [value]
            elif isinstance(existing, list):
                existing.append(value)
            elif not isinstance(existing, dict):
                parsed[name] = [existing, value]
            continue
        bucket = parsed.get(name)
        if not isinstance(bucket, dict):
            bucket = {}
            parsed[name] = bucket
        _append(bucket, operator, value)
    return parsed


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _field_list(value: Any) -> List[str]:
    """"a,-b" or ["a", "-b"] -> ["a", "-b"]"""
    if value is None or isinstance(value, dict):
        return []
    parts = value if isinstance(value, list) else [value]
    tokens: List[str] = []
    for part in parts:
        tokens.extend(token.strip() for token in str(part).split(","))
    return [token for token in tokens if token and token != "-"]


def _parse_page(raw: Any) -> int:
    """Page numbers may be written "2" or "2.0"; anything non-integral is rejected."""
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        raise ValidationError(["page: must be an integer"])
    if not value.is_integer():
        raise ValidationError(["page: must be an integer"])
    return int(value)


def rewrite_condition(condition: Any) -> Any:
    """Translate comparison keywords in an operator object into store operators."""
    if isinstance(condition, dict):
        rewritten: Dict[str, Any] = {}
        for key, value in condition.items():
            key = str(key).lstrip("$")
            if key in COMPARISON_KEYWORDS:
                key = f"${key}"
            rewritten[key] = value
        return rewritten
    if isinstance(condition, list):
        return {"$in": list(condition)}
    return condition


@dataclass
class QueryPipeline:
    """Per-request query state threaded through the stages."""

    filter_predicate: Dict[str, Any] = field(default_factory=dict)
    sort_spec: Optional[str] = None
    projection: Optional[str] = None
    search_term: Optional[str] = None
    page: Optional[int] = None
    page_size: int = DEFAULT_PAGE_SIZE
    skip: int = 0
    limit: int = 0

    @property
    def paginated(self) -> bool:
        return self.page is not None


class QueryFeatures:
    """Applies filter, sort, search, select and pagination to a store query."""

    def __init__(
        self,
        query: Query,
        params: Mapping[str, Any],
        *,
        search_field: str = "name",
        search_normalizer: Optional[Callable[[str], str]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        allowed_fields: Optional[Iterable[str]] = None,
    ):
        self.query = query
        self.params = dict(params)
        self.search_field = search_field
        self.search_normalizer = search_normalizer
        self.allowed_fields = frozenset(allowed_fields) if allowed_fields is not None else None
        self.pipeline = QueryPipeline(page_size=page_size)

    def _allowed(self, name: str) -> bool:
        return self.allowed_fields is None or name in self.allowed_fields

    def filter(self) -> "QueryFeatures":
        predicate: Dict[str, Any] = {}
        for key, value in self.params.items():
            if key in RESERVED_KEYS:
                continue
            name = str(key).lstrip("$")
            if not name or not self._allowed(name):
                continue
            predicate[name] = rewrite_condition(value)
        self.pipeline.filter_predicate = predicate
        self.query.find(predicate)
        return self

    def sort(self) -> "QueryFeatures":
        keys = [
            token for token in _field_list(self.params.get("sort"))
            if self._allowed(token.lstrip("-"))
        ]
        if keys:
            self.pipeline.sort_spec = " ".join(keys)
            self.query.sort(self.pipeline.sort_spec)
        return self

    def search(self) -> "QueryFeatures":
        term = _first(self.params.get("search"))
        if isinstance(term, str) and self.search_normalizer:
            term = self.search_normalizer(term)
        if isinstance(term, str) and term:
            self.pipeline.search_term = term
            self.query.find({self.search_field: {"$regex": re.escape(term), "$options": "i"}})
        return self

    def select(self) -> "QueryFeatures":
        fields = [
            token for token in _field_list(self.params.get("fields"))
            if self._allowed(token.lstrip("-"))
        ]
        if fields:
            self.pipeline.projection = " ".join(fields)
            self.query.select(self.pipeline.projection)
        return self

    def paginate(self) -> "QueryFeatures":
        raw_page = _first(self.params.get("page"))
        page = 0
        if raw_page not in (None, ""):
            page = _parse_page(raw_page)

        if page <= 0:
            self.pipeline.page = None
            self.pipeline.skip = 0
            self.pipeline.limit = 0
        else:
            self.pipeline.page = page
            self.pipeline.skip = (page - 1) * self.pipeline.page_size
            self.pipeline.limit = self.pipeline.page_size

        self.query.skip(self.pipeline.skip).limit(self.pipeline.limit)
        return self

    def apply(self) -> "QueryFeatures":
        """Run every stage in order."""
        return self.filter().sort().search().select().paginate()
