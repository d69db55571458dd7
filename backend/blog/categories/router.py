import logging

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import require_admin
from ..database import SessionDep
from ..articles.services.translation import TranslatorDep
from . import service
from .schemas import CategoryCreate, CategoryDetail, CategoryListItem, CategoryOut, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_category(body: CategoryCreate, db: SessionDep):
    return await service.create_category(db, body)


@router.get("/", response_model=list[CategoryListItem])
async def list_categories(db: SessionDep):
    return await service.list_categories(db)


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(category_id: int, db: SessionDep):
    return await service.get_detail(db, category_id)


@router.patch("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
async def update_category(category_id: int, body: CategoryUpdate, db: SessionDep):
    category = await service.get_or_404(db, category_id)
    return await service.update_category(db, category, body)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_category(category_id: int, db: SessionDep):
    category = await service.get_or_404(db, category_id)
    await service.delete_category(db, category)
    return


@router.post("/{category_id}/translate", response_model=CategoryOut, dependencies=[Depends(require_admin)])
async def translate_category(category_id: int, db: SessionDep, translator: TranslatorDep):
    """카테고리 이름/설명을 영문으로 번역해서 저장"""
    category = await service.get_or_404(db, category_id)
    name_en, description_en = await translator.translate_multiple(
        [category.name, category.description or ""]
    )
    logger.info(f"Category {category_id} translated")
    return await service.save_translation(db, category, name_en, description_en)
