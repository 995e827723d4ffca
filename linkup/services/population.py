"""Resolve account ids on feed documents into author and liker summaries."""

import copy
from typing import Any, Dict, Iterable, List

from ..stores.repository import AccountRepository

SUMMARY_FIELDS = ("id", "first_name", "last_name")


async def populate_people(
    documents: Iterable[Dict[str, Any]], accounts: AccountRepository
) -> List[Dict[str, Any]]:
    """
    Copies of the documents with "author" and "likers" added next to
    author_id and liker_ids, each entry being {id, first_name, last_name}.

    Documents projected without author_id or liker_ids get no summary for
    them. Deleted accounts resolve to None as author and are left out of
    likers.
    """
    documents = [copy.deepcopy(dict(document)) for document in documents]
    ids = set()
    for document in documents:
        if document.get("author_id"):
            ids.add(document["author_id"])
        ids.update(document.get("liker_ids") or [])

    people: Dict[str, Dict[str, Any]] = {}
    if ids:
        for account in await accounts.find_all({"id": {"$in": sorted(ids)}}):
            people[account.id] = {field: getattr(account, field) for field in SUMMARY_FIELDS}

    for document in documents:
        if "author_id" in document:
            document["author"] = people.get(document["author_id"])
        if "liker_ids" in document:
            document["likers"] = [
                people[liker_id] for liker_id in document["liker_ids"] if liker_id in people
            ]
    return documents
