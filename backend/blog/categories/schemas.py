# backend/blog/categories/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..models import CustomModel


class CategoryCreate(CustomModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[int] = None


class CategoryUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[int] = None


class CategorySummary(CustomModel):
    id: int
    name: str
    slug: str
    name_en: Optional[str] = None


class CategoryOut(CategorySummary):
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[int] = None
    description_en: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    parent: Optional[CategorySummary] = None
    children: List[CategorySummary] = Field(default_factory=list)


class CategoryListItem(CategoryOut):
    post_count: int = 0


class CategoryPost(CustomModel):
    """카테고리 상세에 포함되는 게시 기사 요약"""
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    published_at: Optional[datetime] = None


class CategoryDetail(CategoryOut):
    published_posts: List[CategoryPost] = Field(default_factory=list)
