"""Like toggling shared by posts and comments."""

from typing import Tuple

from ..stores.repository import ModelT, Repository
from ..utils.exceptions import NotFoundError


async def toggle_like(
    repository: Repository[ModelT], entity: ModelT, account_id: str, not_found: str
) -> Tuple[ModelT, bool]:
    """
    Add or remove account_id from the entity's liker_ids.

    Returns the updated entity and whether it is now liked. The membership
    check reads the entity passed in; the write itself is a single atomic
    set operation, so a concurrent toggle can at worst repeat the same
    add or pull.
    """
    if account_id in entity.liker_ids:
        updated = await repository.update({"id": entity.id}, pull={"liker_ids": account_id})
        liked = False
    else:
        updated = await repository.update({"id": entity.id}, add_to_set={"liker_ids": account_id})
        liked = True
    if updated is None:
        # deleted between the read and the write
        raise NotFoundError(not_found)
    return updated, liked
