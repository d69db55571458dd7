# backend/blog/comments/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..models import CustomModel
from ..users.schema import UserPublic


class CommentCreate(CustomModel):
    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: Optional[int] = None


class CommentUpdate(CustomModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentBase(CustomModel):
    id: int
    content: str
    post_id: int
    parent_id: Optional[int] = None
    approved: bool
    created_at: datetime
    updated_at: datetime
    author: UserPublic


class ReplyOut(CommentBase):
    pass


class CommentOut(CommentBase):
    replies: List[ReplyOut] = Field(default_factory=list)
