from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..articles.models import Post
from ..categories.models import Category
from ..comments.models import Comment
from ..tags.models import Tag


async def _count(db: AsyncSession, stmt) -> int:
    return (await db.execute(stmt)).scalar_one() or 0


async def get_dashboard_stats(db: AsyncSession, recent_limit: int = 5) -> dict:
    """대시보드 집계: 기사/조회수/좋아요/콘텐츠 수 + 최근 활동"""
    total_articles = await _count(db, select(func.count(Post.id)))
    published_articles = await _count(db, select(func.count(Post.id)).where(Post.published.is_(True)))

    total_views = await _count(db, select(func.coalesce(func.sum(Post.view_count), 0)))
    total_likes = await _count(db, select(func.coalesce(func.sum(Post.like_count), 0)))

    most_viewed_row = (
        await db.execute(
            select(Post.title, Post.view_count)
            .order_by(Post.view_count.desc(), Post.id.asc())
            .limit(1)
        )
    ).first()

    recent = (
        await db.execute(
            select(Post)
            .options(selectinload(Post.author), selectinload(Post.category))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(recent_limit)
        )
    ).scalars().all()

    return {
        "articles": {
            "total": total_articles,
            "published": published_articles,
            "draft": total_articles - published_articles,
        },
        "views": {
            "total": total_views,
            "most_viewed": (
                {"title": most_viewed_row.title, "view_count": most_viewed_row.view_count}
                if most_viewed_row else None
            ),
        },
        "likes": total_likes,
        "content": {
            "categories": await _count(db, select(func.count(Category.id))),
            "tags": await _count(db, select(func.count(Tag.id))),
            "comments": await _count(db, select(func.count(Comment.id))),
        },
        "recent_activity": [
            {
                "id": post.id,
                "title": post.title,
                "action": "Article published" if post.published else "Draft saved",
                "author": post.author.name,
                "category": post.category.name,
                "created_at": post.created_at,
                "published_at": post.published_at,
            }
            for post in recent
        ],
    }
