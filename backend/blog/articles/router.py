# backend/blog/articles/router.py
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from ..auth.dependencies import CurrentUser, OptionalUser, get_client_ip, require_author
from ..config import settings
from ..database import SessionDep
from ..users.models import User
from . import service
from .schemas import (
    ArticleCreate,
    ArticleDetail,
    ArticleOut,
    ArticleTranslationResponse,
    ArticleUpdate,
    FieldTranslationStats,
    LikedStatus,
    LikeResponse,
)
from .services.translation import TranslatorDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/articles", tags=["articles"])


def _schedule_translation(background_tasks: BackgroundTasks, post_id: int, translator) -> None:
    if settings.AUTO_TRANSLATE:
        background_tasks.add_task(service.translate_post_background, post_id, translator)
        logger.info(f"Scheduled background translation for article {post_id}")


@router.post("/", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
async def create_article(
    body: ArticleCreate,
    db: SessionDep,
    background_tasks: BackgroundTasks,
    translator: TranslatorDep,
    current_user: User = Depends(require_author),
):
    post = await service.create_post(db, current_user, body)
    _schedule_translation(background_tasks, post.id, translator)
    return post


@router.get("/", response_model=list[ArticleOut])
async def list_articles(
    db: SessionDep,
    current_user: Optional[User] = OptionalUser,
    published: Optional[bool] = None,
    category: Optional[int] = None,
    tag: Optional[int] = None,
    featured: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    # 작성자/관리자가 아니면 게시된 글만
    if not service.is_staff(current_user):
        published = True
    return await service.list_posts(
        db,
        published=published,
        category_id=category,
        tag_id=tag,
        featured=featured,
        skip=skip,
        limit=limit,
    )


@router.get("/slug/{slug}", response_model=ArticleDetail)
async def get_article_by_slug(
    slug: str,
    request: Request,
    db: SessionDep,
    current_user: Optional[User] = OptionalUser,
):
    post = await service.get_post_by_slug(db, slug, published_only=not service.is_staff(current_user))
    if post.published:
        await service.record_view(db, post, get_client_ip(request))
        post = await service.get_post_or_404(db, post.id)
    comments = await service.get_comments(db, post)
    return {**ArticleOut.model_validate(post).model_dump(), "comments": comments}


@router.post("/slug/{slug}/like", response_model=LikeResponse)
async def like_article(slug: str, request: Request, db: SessionDep):
    post = await service.get_post_by_slug(db, slug)
    is_liked, like_count = await service.like_post(db, post, get_client_ip(request))
    return {"is_liked": is_liked, "like_count": like_count}


@router.delete("/slug/{slug}/like", response_model=LikeResponse)
async def unlike_article(slug: str, request: Request, db: SessionDep):
    post = await service.get_post_by_slug(db, slug)
    is_liked, like_count = await service.unlike_post(db, post, get_client_ip(request))
    return {"is_liked": is_liked, "like_count": like_count}


@router.get("/slug/{slug}/liked", response_model=LikedStatus)
async def check_if_liked(slug: str, request: Request, db: SessionDep):
    post = await service.get_post_by_slug(db, slug)
    return {"is_liked": await service.is_liked(db, post, get_client_ip(request))}


@router.get("/{post_id}", response_model=ArticleDetail, dependencies=[Depends(require_author)])
async def get_article(post_id: int, db: SessionDep):
    post = await service.get_post_or_404(db, post_id)
    comments = await service.get_comments(db, post)
    return {**ArticleOut.model_validate(post).model_dump(), "comments": comments}


@router.patch("/{post_id}", response_model=ArticleOut)
async def update_article(
    post_id: int,
    body: ArticleUpdate,
    db: SessionDep,
    background_tasks: BackgroundTasks,
    translator: TranslatorDep,
    current_user: User = CurrentUser,
):
    post = await service.get_post_or_404(db, post_id)
    service.ensure_can_manage(post, current_user)
    post = await service.update_post(db, post, body)
    if {"title", "excerpt", "content"} & body.model_fields_set:
        _schedule_translation(background_tasks, post.id, translator)
    return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(post_id: int, db: SessionDep, current_user: User = CurrentUser):
    post = await service.get_post_or_404(db, post_id)
    service.ensure_can_manage(post, current_user)
    await service.delete_post(db, post)
    return


@router.put("/{post_id}/publish", response_model=ArticleOut)
async def publish_article(post_id: int, db: SessionDep, current_user: User = CurrentUser):
    post = await service.get_post_or_404(db, post_id)
    service.ensure_can_manage(post, current_user)
    return await service.set_published(db, post, True)


@router.put("/{post_id}/unpublish", response_model=ArticleOut)
async def unpublish_article(post_id: int, db: SessionDep, current_user: User = CurrentUser):
    post = await service.get_post_or_404(db, post_id)
    service.ensure_can_manage(post, current_user)
    return await service.set_published(db, post, False)


@router.post("/{post_id}/translate", response_model=ArticleTranslationResponse)
async def translate_article(
    post_id: int,
    db: SessionDep,
    translator: TranslatorDep,
    current_user: User = CurrentUser,
):
    """제목/요약/본문을 즉시 번역 (청크 단위 순차 번역, 실패 청크는 원문 유지)"""
    post = await service.get_post_or_404(db, post_id)
    service.ensure_can_manage(post, current_user)
    post, outcomes = await service.translate_post(db, post, translator)
    return {
        "article": post,
        "fields": [
            FieldTranslationStats(
                field=name,
                chunks=len(outcome.results),
                succeeded=outcome.succeeded,
                fell_back=outcome.fell_back,
            )
            for name, outcome in outcomes
        ],
    }
