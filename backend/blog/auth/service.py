from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Tuple

from jose import jwt, JWTError
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..users import service as user_service
from ..users.models import User
from .models import UserSession


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # sqlite는 tz 정보를 보존하지 않으므로 UTC로 간주
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def encode_session_token(session: UserSession) -> str:
    """세션 행을 가리키는 서명된 토큰을 생성합니다."""
    to_encode = {
        "sid": session.token,
        "sub": str(session.user_id),
        "type": "session",
        "exp": _as_aware(session.expires_at),
    }
    return jwt.encode(to_encode, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)


def _decode_token(token: str) -> Optional[Dict]:
    """
    토큰을 디코딩하고 서명/만료를 검사하는 내부 헬퍼 함수.
    """
    try:
        return jwt.decode(token, settings.SESSION_SECRET_KEY, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        # 변조, 만료 등
        return None


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    이메일과 비밀번호로 인증을 시도합니다.
    성공 시 User 객체를, 실패 시 None을 반환합니다.
    """
    user = await user_service.get_user_by_email(email, db)
    if not user or not await user_service.verify_password(password, user.hashed_password):
        return None
    return user


async def create_session(
    db: AsyncSession,
    user: User,
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[UserSession, str]:
    session = UserSession(
        user_id=user.id,
        expires_at=_utcnow() + timedelta(days=settings.SESSION_EXPIRE_DAYS),
        ip_address=ip_address,
        user_agent=(user_agent or "")[:500] or None,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session, encode_session_token(session)


async def get_session_from_token(token: str, db: AsyncSession) -> Optional[UserSession]:
    """
    토큰 서명이 유효하고, 세션 행이 존재하며, 만료되지 않은 경우에만 세션을 반환합니다.
    """
    payload = _decode_token(token)
    if payload is None or payload.get("type") != "session":
        return None

    sid = payload.get("sid")
    if not sid:
        return None

    result = await db.execute(
        select(UserSession)
        .options(selectinload(UserSession.user))
        .where(UserSession.token == sid)
    )
    session = result.scalar_one_or_none()
    if session is None:
        return None
    if _as_aware(session.expires_at) <= _utcnow():
        # 만료된 세션은 정리
        await db.delete(session)
        await db.commit()
        return None
    return session


async def revoke_session(db: AsyncSession, session: UserSession) -> None:
    await db.delete(session)
    await db.commit()


async def revoke_user_sessions(db: AsyncSession, user_id: int) -> None:
    await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
    await db.commit()
