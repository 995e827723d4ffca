"""
Signed tokens (PyJWT).

Session tokens carry the account id, display name, email, role and the
issue time; they are never stored. Email tokens carry only the address and
are signed with a separate key.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from ..models import Account
from ..utils.config import AuthSettings
from ..utils.exceptions import AuthError

SECONDS_PER_DAY = 86400

# exp is checked against the caller's clock, not the library's
_DECODE_OPTIONS = {"verify_exp": False, "verify_iat": False, "verify_nbf": False}


@dataclass(frozen=True)
class TokenClaims:
    """Decoded session token"""
    account_id: str
    display_name: str
    email: str
    role: str
    issued_at: int


def issue_session_token(account: Account, settings: AuthSettings, now: int) -> str:
    payload = {
        "sub": account.id,
        "name": account.display_name,
        "email": account.email,
        "role": account.role,
        "iat": now,
        "exp": now + settings.token_expiry_days * SECONDS_PER_DAY,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, key: str, algorithm: str, now: int) -> Dict[str, Any]:
    if not token:
        raise AuthError("Invalid token")
    try:
        payload = jwt.decode(token, key, algorithms=[algorithm], options=_DECODE_OPTIONS)
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")
    expires = payload.get("exp")
    if expires is not None:
        try:
            expired = int(expires) <= now
        except (TypeError, ValueError):
            raise AuthError("Invalid token")
        if expired:
            raise AuthError("Invalid token")
    return payload


def decode_session_token(token: str, settings: AuthSettings, now: int) -> TokenClaims:
    """Check signature and expiry; raises AuthError("Invalid token") otherwise."""
    payload = _decode(token, settings.secret_key, settings.algorithm, now)
    try:
        return TokenClaims(
            account_id=str(payload["sub"]),
            display_name=str(payload.get("name", "")),
            email=str(payload["email"]),
            role=str(payload["role"]),
            issued_at=int(payload["iat"]),
        )
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid token")


def issue_email_token(
    email: str, settings: AuthSettings, now: int, expires_in: Optional[int] = None
) -> str:
    """Token for email links; without expires_in it never expires (resend links)."""
    payload: Dict[str, Any] = {"email": email, "iat": now}
    if expires_in is not None:
        payload["exp"] = now + expires_in
    return jwt.encode(payload, settings.verify_email_key, algorithm=settings.algorithm)


def decode_email_token(token: str, settings: AuthSettings, now: int) -> str:
    payload = _decode(token, settings.verify_email_key, settings.algorithm, now)
    email = payload.get("email")
    if not isinstance(email, str) or not email:
        raise AuthError("Invalid token")
    return email
