# backend/blog/articles/schemas.py
from ..models import CustomModel
from ..users.schema import UserPublic
from ..categories.schemas import CategorySummary
from ..comments.schemas import CommentOut
from pydantic import Field
from typing import Optional, List
from datetime import datetime


class TagSummary(CustomModel):
    id: int
    name: str
    slug: str


class ArticleCreate(CustomModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=300)
    excerpt: Optional[str] = None
    content: str = Field(..., min_length=1, description="HTML 본문")
    cover_image: Optional[str] = Field(None, max_length=500)
    published: bool = False
    featured: bool = False
    category_id: int
    tag_ids: List[int] = Field(default_factory=list)
    # 관리자만 다른 작성자를 지정할 수 있음
    author_id: Optional[int] = None


class ArticleUpdate(CustomModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=300)
    excerpt: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    cover_image: Optional[str] = Field(None, max_length=500)
    published: Optional[bool] = None
    featured: Optional[bool] = None
    category_id: Optional[int] = None
    # None이면 태그 유지, 리스트가 오면 전체 교체
    tag_ids: Optional[List[int]] = None


class ArticleOut(CustomModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    cover_image: Optional[str] = None
    published: bool
    featured: bool
    view_count: int
    like_count: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    title_en: Optional[str] = None
    slug_en: Optional[str] = None
    excerpt_en: Optional[str] = None
    content_en: Optional[str] = None
    translated_at: Optional[datetime] = None

    author: UserPublic
    category: CategorySummary
    tags: List[TagSummary] = Field(default_factory=list)


class ArticleDetail(ArticleOut):
    comments: List[CommentOut] = Field(default_factory=list)


class LikeResponse(CustomModel):
    is_liked: bool
    like_count: int


class LikedStatus(CustomModel):
    is_liked: bool


class FieldTranslationStats(CustomModel):
    field: str
    chunks: int
    succeeded: int
    fell_back: int


class ArticleTranslationResponse(CustomModel):
    article: ArticleOut
    fields: List[FieldTranslationStats] = Field(default_factory=list)
