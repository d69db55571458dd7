from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings
from ..database import SessionDep
from ..users.models import User, Role
from ..auth import service as auth_service
from .models import UserSession

bearer_scheme = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    """프록시 뒤에서는 X-Forwarded-For 첫 항목을 사용"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_session(
    request: Request,
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[UserSession]:
    token = _extract_token(request, credentials)
    if not token:
        return None
    return await auth_service.get_session_from_token(token, db)


async def get_current_session(
    session: Optional[UserSession] = Depends(get_optional_session),
) -> UserSession:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_optional_user(
    session: Optional[UserSession] = Depends(get_optional_session),
) -> Optional[User]:
    return session.user if session else None


async def get_current_user(
    session: UserSession = Depends(get_current_session),
) -> User:
    return session.user


CurrentUser = Depends(get_current_user)
OptionalUser = Depends(get_optional_user)


def require_author(current_user: User = CurrentUser) -> User:
    """
    작성 권한(AUTHOR 또는 ADMIN)이 있는지 확인하는 의존성.
    권한이 없으면 403 Forbidden 에러를 발생시킵니다.
    """
    if current_user.role not in (Role.AUTHOR, Role.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Author privileges required"
        )
    return current_user


def require_admin(current_user: User = CurrentUser) -> User:
    """
    현재 사용자가 ADMIN 역할을 가지고 있는지 확인하는 의존성.
    관리자가 아닐 경우, 403 Forbidden 에러를 발생시킵니다.
    """
    if current_user.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user
