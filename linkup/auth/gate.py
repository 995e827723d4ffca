"""Role-based authorization on top of a validated session."""

from typing import Iterable

from ..utils.exceptions import AuthorizationError


def authorize(role: str, allowed_roles: Iterable[str]) -> None:
    """Raise AuthorizationError unless role is one of allowed_roles."""
    roles = list(allowed_roles)
    if role not in roles:
        raise AuthorizationError(f"Unauthorized. Only {' and '.join(roles)} can access this API")
