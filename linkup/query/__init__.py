from .enrichment import enrich_feed, format_distance, time_ago
from .factory import query_factory
from .features import (
    COMPARISON_KEYWORDS,
    DEFAULT_PAGE_SIZE,
    RESERVED_KEYS,
    QueryFeatures,
    QueryPipeline,
    parse_query_string,
)

__all__ = [
    "COMPARISON_KEYWORDS",
    "DEFAULT_PAGE_SIZE",
    "RESERVED_KEYS",
    "QueryFeatures",
    "QueryPipeline",
    "enrich_feed",
    "format_distance",
    "parse_query_string",
    "query_factory",
    "time_ago",
]
