from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..articles.models import Post, post_tags
from ..slugs import generate_slug, ensure_unique_slug
from .models import Tag
from .schemas import TagCreate, TagUpdate


async def get_by_id(db: AsyncSession, tag_id: int) -> Optional[Tag]:
    result = await db.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def get_or_404(db: AsyncSession, tag_id: int) -> Tag:
    tag = await get_by_id(db, tag_id)
    if not tag:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Tag with ID {tag_id} not found")
    return tag


async def list_tags(db: AsyncSession) -> List[Tag]:
    counts = (
        select(post_tags.c.tag_id, func.count(post_tags.c.post_id).label("post_count"))
        .group_by(post_tags.c.tag_id)
        .subquery()
    )
    result = await db.execute(
        select(Tag, func.coalesce(counts.c.post_count, 0))
        .outerjoin(counts, counts.c.tag_id == Tag.id)
        .order_by(Tag.name.asc())
    )
    items = []
    for tag, post_count in result.all():
        tag.post_count = post_count
        items.append(tag)
    return items


async def get_detail(db: AsyncSession, tag_id: int) -> Tag:
    tag = await get_or_404(db, tag_id)
    result = await db.execute(
        select(Post)
        .join(post_tags, post_tags.c.post_id == Post.id)
        .where(post_tags.c.tag_id == tag_id)
        .order_by(Post.created_at.desc())
    )
    tag.tagged_posts = result.scalars().all()
    return tag


async def _commit_or_conflict(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tag name already exists")


async def create_tag(db: AsyncSession, data: TagCreate) -> Tag:
    slug = await ensure_unique_slug(db, Tag, generate_slug(data.name, data.slug))
    tag = Tag(name=data.name, slug=slug)
    db.add(tag)
    await _commit_or_conflict(db)
    await db.refresh(tag)
    return tag


async def update_tag(db: AsyncSession, tag: Tag, data: TagUpdate) -> Tag:
    update_data = data.model_dump(exclude_unset=True)
    provided_slug = update_data.get("slug")
    if update_data.get("name") or provided_slug:
        tag.slug = await ensure_unique_slug(
            db, Tag, generate_slug(update_data.get("name") or tag.name, provided_slug), exclude_id=tag.id
        )
    if update_data.get("name"):
        tag.name = update_data["name"]
    await _commit_or_conflict(db)
    await db.refresh(tag)
    return tag


async def delete_tag(db: AsyncSession, tag: Tag) -> None:
    await db.delete(tag)
    await db.commit()


async def resolve_tags(db: AsyncSession, tag_ids: List[int]) -> List[Tag]:
    """tag_ids를 Tag 목록으로 변환. 없는 ID가 있으면 400."""
    unique_ids = list(dict.fromkeys(tag_ids))
    if not unique_ids:
        return []
    result = await db.execute(select(Tag).where(Tag.id.in_(unique_ids)))
    tags = result.scalars().all()
    missing = set(unique_ids) - {t.id for t in tags}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown tag id(s): {sorted(missing)}",
        )
    return list(tags)
