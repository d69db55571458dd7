# backend/blog/stats/schemas.py
from datetime import datetime
from typing import List, Optional

from ..models import CustomModel


class ArticleCounts(CustomModel):
    total: int
    published: int
    draft: int


class MostViewed(CustomModel):
    title: str
    view_count: int


class ViewStats(CustomModel):
    total: int
    most_viewed: Optional[MostViewed] = None


class ContentCounts(CustomModel):
    categories: int
    tags: int
    comments: int


class RecentActivity(CustomModel):
    id: int
    title: str
    action: str
    author: str
    category: str
    created_at: datetime
    published_at: Optional[datetime] = None


class DashboardStats(CustomModel):
    articles: ArticleCounts
    views: ViewStats
    likes: int
    content: ContentCounts
    recent_activity: List[RecentActivity]
