"""Post data model"""

from datetime import datetime
from typing import List
from uuid import uuid4

from pydantic import BaseModel, Field


class Post(BaseModel):
    """Feed post. Only the author may change or delete it."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    author_id: str
    text: str = Field(..., min_length=1)
    liker_ids: List[str] = Field(default_factory=list)
    is_private: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
