"""
Authentication service: signup, email verification, login and the
token-freshness protocol.

No session is stored server side. Each account carries a nullable
security_timestamp (epoch seconds); a session token whose issue time is
older than that timestamp is stale. Logout, password changes, password
resets, deactivation toggles and blocking all bump the timestamp, which
ends every session issued before the change, including the one used to
make it.
"""

from __future__ import annotations

import secrets
import time
from typing import Callable, Optional, Tuple

from ..models import Account
from ..stores.document_store import DuplicateKeyError
from ..stores.repository import AccountRepository
from ..services.email_service import (
    Notifier,
    reset_code_email_html,
    verification_email_html,
)
from ..utils.config import AuthSettings
from ..utils.exceptions import AuthError, ConflictError, NotFoundError
from ..utils.logger import get_logger
from ..utils.text import slugify
from .passwords import hash_password, verify_password
from .tokens import (
    TokenClaims,
    decode_email_token,
    decode_session_token,
    issue_email_token,
    issue_session_token,
)

logger = get_logger(__name__)

INCORRECT_CREDENTIALS = "Incorrect email or password"


class AuthService:
    """Issues, validates and invalidates session tokens for accounts."""

    def __init__(
        self,
        accounts: AccountRepository,
        notifier: Notifier,
        settings: AuthSettings,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.accounts = accounts
        self.notifier = notifier
        self.settings = settings
        self._clock = clock or time.time

    def now(self) -> int:
        return int(self._clock())

    def hash_password(self, password: str) -> str:
        return hash_password(password, rounds=self.settings.bcrypt_rounds)

    # --- signup and email verification ---

    def _verification_links(self, email: str, base_url: str) -> Tuple[str, str]:
        now = self.now()
        token = issue_email_token(
            email, self.settings, now, expires_in=self.settings.verify_email_expiry_seconds
        )
        refresh_token = issue_email_token(email, self.settings, now)
        base_url = base_url.rstrip("/")
        return (
            f"{base_url}/api/v1/auth/verify-email/{token}",
            f"{base_url}/api/v1/auth/resend-email/{refresh_token}",
        )

    async def signup(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        base_url: str,
        job_title: Optional[str] = None,
    ) -> Account:
        """Create an unverified account after mailing its verification links."""
        email = email.strip().lower()
        if await self.accounts.get_by_email(email):
            raise ConflictError(f"{email} already registered")

        confirmation_link, resend_link = self._verification_links(email, base_url)
        # no account is created when the mail cannot be delivered
        await self.notifier.send(
            email, "Confirmation email", verification_email_html(confirmation_link, resend_link)
        )

        account = Account(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            slug=slugify(f"{first_name} {last_name}"),
            email=email,
            password_hash=self.hash_password(password),
            job_title=job_title,
        )
        try:
            account = await self.accounts.create(account)
        except DuplicateKeyError:
            raise ConflictError(f"{email} already registered")
        logger.info("Account created", account_id=account.id)
        return account

    async def verify_email(self, token: str) -> Account:
        email = decode_email_token(token, self.settings, self.now())
        account = await self.accounts.get_by_email(email)
        if not account:
            raise NotFoundError(f"{email} is not registered. Please signup first")
        if account.email_verified:
            raise ConflictError(f"{email} is already verified. Please login.")
        account = await self.accounts.update({"id": account.id}, {"email_verified": True})
        logger.info("Email verified", account_id=account.id)
        return account

    async def resend_verification(self, refresh_token: str, base_url: str) -> str:
        """Mail a fresh verification link; returns the address it went to."""
        email = decode_email_token(refresh_token, self.settings, self.now())
        confirmation_link, _ = self._verification_links(email, base_url)
        await self.notifier.send(
            email, "Confirmation email", verification_email_html(confirmation_link)
        )
        return email

    # --- sessions ---

    async def login(self, email: str, password: str) -> Tuple[str, Account]:
        """
        Issue a session token.

        Unverified accounts get 401, blocked accounts 403. A missing account
        and a wrong password give the same 401 so addresses cannot be enumerated.
        """
        account = await self.accounts.get_by_email(email)
        if account and not account.email_verified:
            raise AuthError(
                "You have to verify your email before trying to login. "
                "Please check your email inbox."
            )
        if account and account.blocked:
            raise AuthError("Sorry! your account is blocked. Please contact us", 403)
        if not account or not verify_password(password, account.password_hash):
            raise AuthError(INCORRECT_CREDENTIALS)

        token = issue_session_token(account, self.settings, self.now())
        logger.info("Session issued", account_id=account.id)
        return token, account

    async def validate(self, token: str) -> TokenClaims:
        """Return the claims of a fresh, valid token for an existing account."""
        claims = decode_session_token(token, self.settings, self.now())
        account = await self.accounts.get(claims.account_id)
        if not account:
            raise NotFoundError("No such account exists")
        if account.security_timestamp is not None and account.security_timestamp > claims.issued_at:
            raise AuthError("Forbidden. Please login again", 403)
        return claims

    def security_bump(self) -> dict:
        """Change-set fragment that ends every outstanding session."""
        return {"security_timestamp": self.now()}

    async def invalidate_all(self, account_id: str) -> Account:
        account = await self.accounts.update({"id": account_id}, self.security_bump())
        if not account:
            raise NotFoundError(f"Account with ID {account_id} not found")
        logger.info("Sessions invalidated", account_id=account_id)
        return account

    async def logout(self, claims: TokenClaims) -> Account:
        return await self.invalidate_all(claims.account_id)

    # --- password reset ---

    async def send_reset_code(self, email: str) -> Account:
        account = await self.accounts.get_by_email(email)
        if not account:
            raise NotFoundError("Account does not exist")
        code = secrets.token_hex(self.settings.reset_code_bytes)
        account = await self.accounts.update({"id": account.id}, {"password_reset_code": code})
        await self.notifier.send(account.email, "Request to reset password", reset_code_email_html(code))
        logger.info("Password reset code sent", account_id=account.id)
        return account

    async def reset_password(self, email: str, code: str, new_password: str) -> Account:
        account = await self.accounts.get_by_email(email)
        if not account:
            raise NotFoundError("Account does not exist")
        stored = account.password_reset_code
        if not stored or not secrets.compare_digest(stored, code.strip().lower()):
            raise AuthError("Incorrect code")

        changes = {"password_hash": self.hash_password(new_password)}
        changes.update(self.security_bump())
        account = await self.accounts.update(
            {"id": account.id}, changes, unset=("password_reset_code",)
        )
        logger.info("Password reset", account_id=account.id)
        return account
