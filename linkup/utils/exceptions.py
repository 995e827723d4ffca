"""Custom exceptions for the Linkup backend"""

from typing import List, Optional, Union


class LinkupError(Exception):
    """Base exception for Linkup. Carries the HTTP status the boundary maps it to."""

    status_code = 500

    def __init__(self, message: Union[str, List[str]], status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message if isinstance(message, str) else "; ".join(message))

    @property
    def status(self) -> str:
        return "fail" if self.status_code < 500 else "error"


class ValidationError(LinkupError):
    """Malformed input"""
    status_code = 400


class AuthError(LinkupError):
    """Missing, invalid or stale session token; also failed login"""
    status_code = 401


class AuthorizationError(LinkupError):
    """Role not allowed for this operation"""
    status_code = 403


class NotFoundError(LinkupError):
    """Missing resource or missing page"""
    status_code = 404


class ConflictError(LinkupError):
    """Duplicate or already-applied state"""
    status_code = 409


class UpstreamError(LinkupError):
    """Email delivery or store failure"""
    status_code = 500


class ConfigError(LinkupError):
    """Configuration error"""
    status_code = 500
