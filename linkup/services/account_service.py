"""Account profile management."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..auth.service import AuthService
from ..models import Account
from ..query.factory import query_factory
from ..stores.document_store import DuplicateKeyError
from ..stores.repository import AccountRepository
from ..utils.exceptions import ConflictError, NotFoundError
from ..utils.logger import get_logger
from ..utils.text import slugify

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountChangeSet:
    """Requested profile changes. None means leave unchanged."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    job_title: Optional[str] = None
    password: Optional[str] = None
    deactivated: Optional[bool] = None


class AccountService:
    def __init__(self, accounts: AccountRepository, auth: AuthService, page_size: int):
        self.accounts = accounts
        self.auth = auth
        self.page_size = page_size

    async def get(self, account_id: str) -> Account:
        account = await self.accounts.get(account_id)
        if not account:
            raise NotFoundError(f"Account with ID {account_id} not found")
        return account

    async def list_accounts(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return await query_factory(self.accounts, self.accounts.find(), params, self.page_size)

    async def _build_changes(self, existing: Account, change_set: AccountChangeSet) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        if change_set.first_name is not None:
            changes["first_name"] = change_set.first_name.strip()
        if change_set.last_name is not None:
            changes["last_name"] = change_set.last_name.strip()
        if "first_name" in changes or "last_name" in changes:
            changes["slug"] = slugify(
                f"{changes.get('first_name', existing.first_name)} "
                f"{changes.get('last_name', existing.last_name)}"
            )
        if change_set.job_title is not None:
            changes["job_title"] = change_set.job_title.strip()
        if change_set.email is not None:
            email = change_set.email.strip().lower()
            if email != existing.email:
                other = await self.accounts.get_by_email(email)
                if other and other.id != existing.id:
                    raise ConflictError(f"{email} already registered")
                changes["email"] = email

        sensitive = False
        if change_set.password is not None:
            changes["password_hash"] = self.auth.hash_password(change_set.password)
            sensitive = True
        if change_set.deactivated is not None and change_set.deactivated != existing.deactivated:
            changes["deactivated"] = change_set.deactivated
            sensitive = True
        if sensitive:
            changes.update(self.auth.security_bump())
        return changes

    async def update(self, account_id: str, change_set: AccountChangeSet) -> Account:
        """Apply a change-set; password or deactivation changes end all sessions."""
        existing = await self.get(account_id)
        changes = await self._build_changes(existing, change_set)
        try:
            account = await self.accounts.update({"id": account_id}, changes)
        except DuplicateKeyError:
            raise ConflictError(f"{change_set.email} already registered")
        if not account:
            raise NotFoundError(f"Account with ID {account_id} not found")
        logger.info(
            "Account updated",
            account_id=account_id,
            fields=sorted(changes),
            sessions_invalidated="security_timestamp" in changes,
        )
        return account

    async def delete(self, account_id: str) -> Account:
        account = await self.accounts.delete({"id": account_id})
        if not account:
            raise NotFoundError(f"Account with ID {account_id} not found")
        logger.info("Account deleted", account_id=account_id)
        return account

    async def set_blocked(self, account_id: str, blocked: bool) -> Account:
        """Admin toggle. Blocking also ends the account's sessions."""
        changes: Dict[str, Any] = {"blocked": blocked}
        if blocked:
            changes.update(self.auth.security_bump())
        account = await self.accounts.update({"id": account_id}, changes)
        if not account:
            raise NotFoundError(f"Account with ID {account_id} not found")
        logger.info("Account block status changed", account_id=account_id, blocked=blocked)
        return account
