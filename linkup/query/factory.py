"""
Result materializer for list endpoints.

Runs the interpreted query, decides between "page not found" and "no
resources" when nothing comes back, strips hidden fields, enriches feed
entities and wraps everything in the list envelope.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from ..stores.document_store import Query, project
from ..stores.repository import Repository
from ..utils.exceptions import NotFoundError
from ..utils.logger import get_logger
from .enrichment import DERIVED_FIELDS, enrich_feed
from .features import DEFAULT_PAGE_SIZE, QueryFeatures

logger = get_logger(__name__)


def _keep_derived(projection: str) -> str:
    """An inclusion projection must also keep the enrichment fields."""
    if any(not token.startswith("-") for token in projection.split()):
        return " ".join([projection, *DERIVED_FIELDS])
    return projection


async def query_factory(
    repository: Repository,
    query: Query,
    params: Mapping[str, Any],
    page_size: int = DEFAULT_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Interpret params against query, execute it and build the response envelope."""
    features = QueryFeatures(
        query,
        params,
        search_field=repository.search_field,
        search_normalizer=repository.normalize_search,
        page_size=page_size,
        allowed_fields=repository.filterable_fields,
    ).apply()
    pipeline = features.pipeline

    # feed fields are derived from created_at and liker_ids, so the client
    # projection is applied after enrichment
    projection = pipeline.projection
    if repository.is_feed and projection:
        features.query.select(None)

    documents = await features.query.exec()

    if not documents:
        if pipeline.paginated:
            raise NotFoundError("Page not found")
        raise NotFoundError(f"No {repository.collection_name} found.")

    documents = [repository.public(doc) for doc in documents]
    if repository.is_feed:
        documents = enrich_feed(documents, now=now)
        if projection:
            documents = [project(doc, _keep_derived(projection)) for doc in documents]

    logger.debug(
        "List query served",
        collection=repository.collection_name,
        page=pipeline.page,
        results=len(documents),
    )
    return {
        "status": "success",
        "page": pipeline.page,
        "limit": pipeline.limit,
        "results": len(documents),
        "data": documents,
    }
