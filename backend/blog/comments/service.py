import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..users.models import User, Role
from .models import Comment
from .schemas import CommentCreate, CommentUpdate

logger = logging.getLogger(__name__)

_COMMENT_FIELDS = ("id", "content", "post_id", "parent_id", "approved", "created_at", "updated_at", "author")


def _loaded():
    return (
        selectinload(Comment.author),
        selectinload(Comment.replies).selectinload(Comment.author),
    )


def serialize_comment(comment: Comment, *, include_unapproved: bool = False) -> dict:
    """응답용 dict 변환. 미승인 답글은 include_unapproved 일 때만 포함."""
    data = {field: getattr(comment, field) for field in _COMMENT_FIELDS}
    replies = sorted(comment.replies, key=lambda r: (r.created_at, r.id))
    data["replies"] = [
        {field: getattr(reply, field) for field in _COMMENT_FIELDS}
        for reply in replies
        if include_unapproved or reply.approved
    ]
    return data


async def get_by_id(db: AsyncSession, comment_id: int) -> Optional[Comment]:
    result = await db.execute(
        select(Comment)
        .options(*_loaded())
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_404(db: AsyncSession, comment_id: int) -> Comment:
    comment = await get_by_id(db, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Comment with ID {comment_id} not found")
    return comment


async def list_for_post(db: AsyncSession, post_id: int, *, include_unapproved: bool = False) -> List[dict]:
    """게시글의 최상위 댓글(최신순) + 답글"""
    stmt = (
        select(Comment)
        .options(*_loaded())
        .where(Comment.post_id == post_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .execution_options(populate_existing=True)
    )
    if not include_unapproved:
        stmt = stmt.where(Comment.approved.is_(True))
    result = await db.execute(stmt)
    return [serialize_comment(c, include_unapproved=include_unapproved) for c in result.scalars().all()]


async def create_comment(db: AsyncSession, post_id: int, author: User, data: CommentCreate) -> Comment:
    parent_id = data.parent_id
    if parent_id is not None:
        parent = await get_by_id(db, parent_id)
        if parent is None or parent.post_id != post_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment does not belong to this article",
            )
        # 답글은 한 단계만 허용: 답글의 답글은 최상위 댓글에 붙임
        if parent.parent_id is not None:
            parent_id = parent.parent_id

    comment = Comment(content=data.content, post_id=post_id, author_id=author.id, parent_id=parent_id)
    db.add(comment)
    await db.commit()
    logger.info(f"Comment created: id={comment.id}, post_id={post_id}, author_id={author.id}")
    return await get_or_404(db, comment.id)


def ensure_can_modify(comment: Comment, user: User) -> None:
    if user.role != Role.ADMIN and comment.author_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")


async def update_comment(db: AsyncSession, comment: Comment, data: CommentUpdate) -> Comment:
    comment.content = data.content
    await db.commit()
    return await get_or_404(db, comment.id)


async def set_approved(db: AsyncSession, comment: Comment, approved: bool) -> Comment:
    comment.approved = approved
    await db.commit()
    return await get_or_404(db, comment.id)


async def delete_comment(db: AsyncSession, comment: Comment) -> None:
    await db.delete(comment)
    await db.commit()
