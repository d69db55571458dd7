import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..articles.models import Post
from ..slugs import generate_slug, ensure_unique_slug
from .models import Category
from .schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def _with_relations(stmt):
    return stmt.options(
        selectinload(Category.parent), selectinload(Category.children)
    ).execution_options(populate_existing=True)


async def get_by_id(db: AsyncSession, category_id: int) -> Optional[Category]:
    result = await db.execute(_with_relations(select(Category).where(Category.id == category_id)))
    return result.scalar_one_or_none()


async def get_or_404(db: AsyncSession, category_id: int) -> Category:
    category = await get_by_id(db, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Category with ID {category_id} not found")
    return category


async def _check_parent(db: AsyncSession, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    """부모 카테고리 존재 여부와 순환 참조를 검사"""
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A category cannot be its own parent")

    # 부모 체인을 따라 올라가며 자기 자신이 나오면 순환
    seen = set()
    current_id = parent_id
    while current_id is not None and current_id not in seen:
        seen.add(current_id)
        result = await db.execute(select(Category.parent_id).where(Category.id == current_id))
        row = result.first()
        if row is None:
            if current_id == parent_id:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Parent category {parent_id} not found")
            break
        if category_id is not None and row[0] == category_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category hierarchy cannot contain cycles")
        current_id = row[0]


async def list_categories(db: AsyncSession) -> List[Category]:
    counts = (
        select(Post.category_id, func.count(Post.id).label("post_count"))
        .group_by(Post.category_id)
        .subquery()
    )
    stmt = _with_relations(
        select(Category, func.coalesce(counts.c.post_count, 0))
        .outerjoin(counts, counts.c.category_id == Category.id)
        .order_by(Category.name.asc())
    )
    result = await db.execute(stmt)
    items = []
    for category, post_count in result.all():
        category.post_count = post_count
        items.append(category)
    return items


async def get_detail(db: AsyncSession, category_id: int) -> Category:
    category = await get_or_404(db, category_id)
    result = await db.execute(
        select(Post)
        .where(Post.category_id == category_id, Post.published.is_(True))
        .order_by(Post.published_at.desc())
    )
    category.published_posts = result.scalars().all()
    return category


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    await _check_parent(db, data.parent_id)
    payload = data.model_dump(exclude={"slug"})
    slug = await ensure_unique_slug(db, Category, generate_slug(data.name, data.slug))

    category = Category(**payload, slug=slug)
    db.add(category)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category name already exists")
    logger.info(f"Category created: id={category.id}, slug={slug}")
    return await get_or_404(db, category.id)


async def update_category(db: AsyncSession, category: Category, data: CategoryUpdate) -> Category:
    update_data = data.model_dump(exclude_unset=True)
    provided_slug = update_data.pop("slug", None)

    if "parent_id" in update_data:
        await _check_parent(db, update_data["parent_id"], category.id)

    if update_data.get("name") or provided_slug:
        name = update_data.get("name") or category.name
        category.slug = await ensure_unique_slug(
            db, Category, generate_slug(name, provided_slug), exclude_id=category.id
        )

    for field, value in update_data.items():
        setattr(category, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category name already exists")
    return await get_or_404(db, category.id)


async def delete_category(db: AsyncSession, category: Category) -> None:
    in_use = (await db.execute(select(func.count(Post.id)).where(Post.category_id == category.id))).scalar_one()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Category is used by {in_use} article(s)",
        )
    # 하위 카테고리는 최상위로 이동 (ON DELETE SET NULL 과 동일)
    for child in list(category.children):
        child.parent_id = None
    await db.delete(category)
    await db.commit()


async def save_translation(db: AsyncSession, category: Category, name_en: str, description_en: Optional[str]) -> Category:
    category.name_en = name_en or None
    category.description_en = description_en or None
    await db.commit()
    return await get_or_404(db, category.id)
