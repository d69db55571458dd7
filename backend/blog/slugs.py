import logging
import re
import unicodedata
import uuid
from typing import Optional, Sequence

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings

logger = logging.getLogger(__name__)

_REMOVE_RE = re.compile(r"[*+~.()'\"!:@]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def generate_slug(title: str, override: Optional[str] = None) -> str:
    """제목(또는 직접 지정한 슬러그)을 URL용 슬러그로 정규화.

    "Café du Monde!" -> "cafe-du-monde"
    """
    source = override if override and override.strip() else (title or "")
    # 악센트 제거 후 ASCII만 남김
    normalized = unicodedata.normalize("NFKD", source)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    ascii_text = _REMOVE_RE.sub("", ascii_text)
    return _NON_ALNUM_RE.sub("-", ascii_text).strip("-")


async def ensure_unique_slug(
    db: AsyncSession,
    model,
    slug: str,
    *,
    exclude_id: Optional[int] = None,
    column: str = "slug",
    shared_with: Sequence[str] = (),
) -> str:
    """slug, slug-1, slug-2 ... 순으로 빈 슬러그를 찾음.

    shared_with 컬럼(같은 URL 공간을 쓰는 다른 슬러그 컬럼)의 값과도 겹치지 않아야 합니다.
    SLUG_MAX_ATTEMPTS 회 안에 못 찾으면 랜덤 접미사를 붙입니다.
    """
    base = slug or "untitled"
    cols = [getattr(model, name) for name in (column, *shared_with)]

    for counter in range(settings.SLUG_MAX_ATTEMPTS):
        candidate = base if counter == 0 else f"{base}-{counter}"
        stmt = select(model.id).where(or_(*(col == candidate for col in cols)))
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        result = await db.execute(stmt.limit(1))
        if result.scalar_one_or_none() is None:
            return candidate

    fallback = f"{base}-{uuid.uuid4().hex[:8]}"
    logger.warning(f"Slug collisions exhausted for {base!r}; using {fallback!r}")
    return fallback
