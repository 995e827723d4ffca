"""Comment data model"""

from datetime import datetime
from typing import List
from uuid import uuid4

from pydantic import BaseModel, Field


class Comment(BaseModel):
    """Comment on a post. Removed together with its post."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    author_id: str
    post_id: str
    text: str = Field(..., min_length=1)
    liker_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
