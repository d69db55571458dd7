from fastapi import APIRouter, Depends, status
from typing import Optional

from ..auth.dependencies import CurrentUser, OptionalUser, require_admin
from ..database import SessionDep
from ..users.models import User, Role
from ..articles import service as article_service
from . import service
from .schemas import CommentCreate, CommentOut, CommentUpdate

router = APIRouter(tags=["comments"])


@router.get("/articles/{post_id}/comments", response_model=list[CommentOut])
async def list_comments(post_id: int, db: SessionDep, current_user: Optional[User] = OptionalUser):
    await article_service.get_post_or_404(db, post_id)
    # 관리자는 미승인 댓글까지 조회
    include_unapproved = current_user is not None and current_user.role == Role.ADMIN
    return await service.list_for_post(db, post_id, include_unapproved=include_unapproved)


@router.post("/articles/{post_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def create_comment(post_id: int, body: CommentCreate, db: SessionDep, current_user: User = CurrentUser):
    await article_service.get_post_or_404(db, post_id)
    comment = await service.create_comment(db, post_id, current_user, body)
    return service.serialize_comment(comment)


@router.patch("/comments/{comment_id}", response_model=CommentOut)
async def update_comment(comment_id: int, body: CommentUpdate, db: SessionDep, current_user: User = CurrentUser):
    comment = await service.get_or_404(db, comment_id)
    service.ensure_can_modify(comment, current_user)
    comment = await service.update_comment(db, comment, body)
    return service.serialize_comment(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: int, db: SessionDep, current_user: User = CurrentUser):
    comment = await service.get_or_404(db, comment_id)
    service.ensure_can_modify(comment, current_user)
    await service.delete_comment(db, comment)
    return


@router.put("/comments/{comment_id}/approve", response_model=CommentOut, dependencies=[Depends(require_admin)])
async def approve_comment(comment_id: int, db: SessionDep):
    comment = await service.get_or_404(db, comment_id)
    comment = await service.set_approved(db, comment, True)
    return service.serialize_comment(comment, include_unapproved=True)


@router.put("/comments/{comment_id}/unapprove", response_model=CommentOut, dependencies=[Depends(require_admin)])
async def unapprove_comment(comment_id: int, db: SessionDep):
    comment = await service.get_or_404(db, comment_id)
    comment = await service.set_approved(db, comment, False)
    return service.serialize_comment(comment, include_unapproved=True)
