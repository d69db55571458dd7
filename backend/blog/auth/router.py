import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..config import settings
from ..database import SessionDep
from ..users.schema import UserCreate
from ..users.service import create_user, update_last_login
from . import service as auth_service
from .dependencies import get_client_ip, get_current_session
from .models import UserSession
from .schema import CurrentSessionResponse, SignInRequest, SignUpRequest, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
    )


@router.post("/sign-up/email", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(body: SignUpRequest, request: Request, response: Response, db: SessionDep):
    if not settings.ALLOW_REGISTRATIONS:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Registrations are disabled.")

    user = await create_user(
        UserCreate(email=body.email, name=body.name, password=body.password, image=body.image),
        db,
    )
    session, token = await auth_service.create_session(
        db, user, ip_address=get_client_ip(request), user_agent=request.headers.get("user-agent")
    )
    _set_session_cookie(response, token)
    logger.info(f"User registered: id={user.id}")
    return {"token": token, "session": session, "user": user}


@router.post("/sign-in/email", response_model=SessionResponse)
async def sign_in(body: SignInRequest, request: Request, response: Response, db: SessionDep):
    user = await auth_service.authenticate_user(db, body.email, body.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session, token = await auth_service.create_session(
        db, user, ip_address=get_client_ip(request), user_agent=request.headers.get("user-agent")
    )
    # last_login 업데이트 (로그인 성공 시)
    await update_last_login(user=user, db=db)
    _set_session_cookie(response, token)
    return {"token": token, "session": session, "user": user}


@router.post("/sign-out")
async def sign_out(
    response: Response,
    db: SessionDep,
    all_devices: bool = False,
    session: UserSession = Depends(get_current_session),
) -> dict:
    if all_devices:
        await auth_service.revoke_user_sessions(db, session.user_id)
    else:
        await auth_service.revoke_session(db, session)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/get-session", response_model=CurrentSessionResponse)
async def get_session(session: UserSession = Depends(get_current_session)):
    return {"session": session, "user": session.user}
