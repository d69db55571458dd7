# backend/blog/articles/service.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, update, delete, or_, and_, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..database import async_session_factory
from ..slugs import generate_slug, ensure_unique_slug
from ..users.models import User, Role
from ..categories.models import Category
from ..tags import service as tag_service
from ..comments import service as comment_service
from .models import Post, PostView, PostLike, post_tags
from .schemas import ArticleCreate, ArticleUpdate
from .services.translation import ChunkedTranslator, TranslationOutcome

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _with_relations(stmt):
    return stmt.options(
        selectinload(Post.author),
        selectinload(Post.category),
        selectinload(Post.tags),
    ).execution_options(populate_existing=True)


def can_manage(post: Post, user: Optional[User]) -> bool:
    """작성자 본인 또는 관리자"""
    return user is not None and (user.role == Role.ADMIN or post.author_id == user.id)


def ensure_can_manage(post: Post, user: User) -> None:
    if not can_manage(post, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")


def is_staff(user: Optional[User]) -> bool:
    return user is not None and user.role in (Role.AUTHOR, Role.ADMIN)


async def get_post(db: AsyncSession, post_id: int) -> Optional[Post]:
    result = await db.execute(_with_relations(select(Post).where(Post.id == post_id)))
    return result.scalar_one_or_none()


async def get_post_or_404(db: AsyncSession, post_id: int) -> Post:
    post = await get_post(db, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Article with ID {post_id} not found")
    return post


async def get_post_by_slug(db: AsyncSession, slug: str, *, published_only: bool = True) -> Post:
    """원문 슬러그 또는 영문 슬러그로 조회"""
    stmt = select(Post).where(or_(Post.slug == slug, Post.slug_en == slug))
    if published_only:
        stmt = stmt.where(Post.published.is_(True))
    # 원문 슬러그 일치를 영문 슬러그 일치보다 우선
    stmt = stmt.order_by(case((Post.slug == slug, 0), else_=1), Post.id)
    result = await db.execute(_with_relations(stmt))
    post = result.scalars().first()
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Article with slug {slug} not found")
    return post


async def list_posts(
    db: AsyncSession,
    *,
    published: Optional[bool] = None,
    category_id: Optional[int] = None,
    tag_id: Optional[int] = None,
    featured: Optional[bool] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[Post]:
    conditions = []
    if published is not None:
        conditions.append(Post.published.is_(published))
    if category_id is not None:
        conditions.append(Post.category_id == category_id)
    if featured is not None:
        conditions.append(Post.featured.is_(featured))
    if tag_id is not None:
        conditions.append(
            Post.id.in_(select(post_tags.c.post_id).where(post_tags.c.tag_id == tag_id))
        )
    stmt = select(Post)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).offset(skip).limit(limit)
    result = await db.execute(_with_relations(stmt))
    return result.scalars().all()


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    exists = (await db.execute(select(Category.id).where(Category.id == category_id))).scalar_one_or_none()
    if exists is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown category id: {category_id}")


async def create_post(db: AsyncSession, author: User, data: ArticleCreate) -> Post:
    await _ensure_category(db, data.category_id)
    tags = await tag_service.resolve_tags(db, data.tag_ids)

    author_id = author.id
    if data.author_id is not None and data.author_id != author.id:
        if author.role != Role.ADMIN:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can set another author")
        author_id = data.author_id

    slug = await ensure_unique_slug(db, Post, generate_slug(data.title, data.slug), shared_with=("slug_en",))
    post = Post(
        title=data.title,
        slug=slug,
        excerpt=data.excerpt,
        content=data.content,
        cover_image=data.cover_image,
        published=data.published,
        featured=data.featured,
        published_at=_utcnow() if data.published else None,
        author_id=author_id,
        category_id=data.category_id,
        tags=tags,
    )
    db.add(post)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Article slug already exists")
    logger.info(f"Article created: id={post.id}, slug={slug}, author_id={author_id}")
    return await get_post_or_404(db, post.id)


async def update_post(db: AsyncSession, post: Post, data: ArticleUpdate) -> Post:
    update_data = data.model_dump(exclude_unset=True)
    tag_ids = update_data.pop("tag_ids", None)
    provided_slug = update_data.pop("slug", None)

    if update_data.get("category_id") is not None:
        await _ensure_category(db, update_data["category_id"])

    # 제목이나 슬러그가 바뀌면 슬러그 재생성
    if update_data.get("title") or provided_slug:
        title = update_data.get("title") or post.title
        post.slug = await ensure_unique_slug(
            db, Post, generate_slug(title, provided_slug), exclude_id=post.id, shared_with=("slug_en",)
        )

    if tag_ids is not None:
        post.tags = await tag_service.resolve_tags(db, tag_ids)

    if update_data.get("published") and not post.published:
        post.published_at = _utcnow()

    for field, value in update_data.items():
        if value is None and field in ("title", "content", "published", "featured", "category_id"):
            continue
        setattr(post, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Article slug already exists")
    return await get_post_or_404(db, post.id)


async def delete_post(db: AsyncSession, post: Post) -> None:
    await db.delete(post)
    await db.commit()
    logger.info(f"Article deleted: id={post.id}")


async def set_published(db: AsyncSession, post: Post, published: bool) -> Post:
    post.published = published
    if published:
        post.published_at = _utcnow()
    await db.commit()
    return await get_post_or_404(db, post.id)


async def get_comments(db: AsyncSession, post: Post) -> List[dict]:
    return await comment_service.list_for_post(db, post.id)


# --- 조회수 / 좋아요 ---

async def record_view(db: AsyncSession, post: Post, viewer_ip: str) -> bool:
    """동일 IP는 VIEW_DEDUP_HOURS 동안 한 번만 집계. 집계했으면 True."""
    since = _utcnow() - timedelta(hours=settings.VIEW_DEDUP_HOURS)
    recent = await db.execute(
        select(PostView.id)
        .where(PostView.post_id == post.id, PostView.viewer_ip == viewer_ip, PostView.viewed_at >= since)
        .limit(1)
    )
    if recent.scalar_one_or_none() is not None:
        return False

    db.add(PostView(post_id=post.id, viewer_ip=viewer_ip, viewed_at=_utcnow()))
    await db.execute(
        update(Post).where(Post.id == post.id).values(view_count=Post.view_count + 1)
    )
    await db.commit()
    return True


async def is_liked(db: AsyncSession, post: Post, liker_ip: str) -> bool:
    result = await db.execute(
        select(PostLike.id).where(PostLike.post_id == post.id, PostLike.liker_ip == liker_ip)
    )
    return result.scalar_one_or_none() is not None


async def _like_count(db: AsyncSession, post_id: int) -> int:
    return (await db.execute(select(Post.like_count).where(Post.id == post_id))).scalar_one()


async def like_post(db: AsyncSession, post: Post, liker_ip: str) -> Tuple[bool, int]:
    """IP당 한 번만 좋아요 (멱등)"""
    if not await is_liked(db, post, liker_ip):
        db.add(PostLike(post_id=post.id, liker_ip=liker_ip, liked_at=_utcnow()))
        try:
            await db.flush()
        except IntegrityError:
            # 동시 요청으로 이미 기록됨
            await db.rollback()
            return True, await _like_count(db, post.id)
        await db.execute(
            update(Post).where(Post.id == post.id).values(like_count=Post.like_count + 1)
        )
        await db.commit()
    return True, await _like_count(db, post.id)


async def unlike_post(db: AsyncSession, post: Post, liker_ip: str) -> Tuple[bool, int]:
    result = await db.execute(
        delete(PostLike).where(PostLike.post_id == post.id, PostLike.liker_ip == liker_ip)
    )
    if result.rowcount:
        await db.execute(
            update(Post)
            .where(Post.id == post.id, Post.like_count > 0)
            .values(like_count=Post.like_count - 1)
        )
    await db.commit()
    return False, await _like_count(db, post.id)


# --- 번역 ---

async def translate_post(
    db: AsyncSession,
    post: Post,
    translator: ChunkedTranslator,
) -> Tuple[Post, List[Tuple[str, TranslationOutcome]]]:
    """제목/요약/본문을 번역해서 영문 필드에 저장"""
    fields = ("title", "excerpt", "content")
    outcomes = await translator.translate_documents([getattr(post, f) or "" for f in fields])

    title_en, excerpt_en, content_en = (o.text for o in outcomes)
    post.title_en = title_en or None
    post.excerpt_en = excerpt_en or None
    post.content_en = content_en or None
    if title_en:
        post.slug_en = await ensure_unique_slug(
            db, Post, generate_slug(title_en), exclude_id=post.id, column="slug_en", shared_with=("slug",)
        )
    post.translated_at = _utcnow()
    await db.commit()

    fell_back = sum(o.fell_back for o in outcomes)
    logger.info(f"Article {post.id} translated: fields={len(fields)}, fell_back_chunks={fell_back}")
    return await get_post_or_404(db, post.id), list(zip(fields, outcomes))


async def translate_post_background(post_id: int, translator: ChunkedTranslator) -> None:
    """BackgroundTasks용: 요청 세션과 분리된 세션에서 번역"""
    async with async_session_factory() as db:
        post = await get_post(db, post_id)
        if post is None:
            logger.warning(f"Article {post_id} disappeared before background translation")
            return
        try:
            await translate_post(db, post, translator)
        except Exception:
            logger.exception(f"Background translation failed for article {post_id}")
