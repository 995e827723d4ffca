"""Account data model"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class AccountRole(str, Enum):
    """Account role enumeration"""
    USER = "user"
    ADMIN = "admin"


class Account(BaseModel):
    """Identity record. Email is unique and stored lowercased."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    first_name: str
    last_name: str
    slug: str
    email: str
    password_hash: str
    job_title: Optional[str] = None
    role: AccountRole = AccountRole.USER
    email_verified: bool = False
    blocked: bool = False
    deactivated: bool = False
    security_timestamp: Optional[int] = None  # epoch seconds
    password_reset_code: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
