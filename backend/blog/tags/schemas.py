# backend/blog/tags/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..models import CustomModel


class TagCreate(CustomModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=150)


class TagUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=150)


class TagOut(CustomModel):
    id: int
    name: str
    slug: str
    created_at: datetime
    updated_at: datetime


class TagListItem(TagOut):
    post_count: int = 0


class TagPost(CustomModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    published: bool
    published_at: Optional[datetime] = None


class TagDetail(TagOut):
    tagged_posts: List[TagPost] = Field(default_factory=list)
