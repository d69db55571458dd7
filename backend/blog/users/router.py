from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from ..database import SessionDep
from ..users.models import User as UserModel

from .schema import UserUpdate, UserPublic, UserMe, UserRoleUpdate
from . import service as user_service
from ..auth.dependencies import CurrentUser, require_admin

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/", response_model=List[UserMe], dependencies=[Depends(require_admin)])
async def list_users(db: SessionDep, skip: int = 0, limit: int = 100):
    return await user_service.get_users(db, skip=skip, limit=limit)

@router.get("/me", response_model=UserMe)
async def read_users_me(current_user: UserModel = CurrentUser):
    return current_user

@router.patch("/me", response_model=UserMe)
async def update_users_me(
    db: SessionDep,
    user_update_data: UserUpdate,
    current_user: UserModel = CurrentUser,
):
    return await user_service.update_user(db, db_user=current_user, user_in=user_update_data)

@router.get("/{user_id}", response_model=UserPublic)
async def get_user_by_id_route(user_id: int, db: SessionDep):
    user = await user_service.get_user_by_id(user_id, db)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user

@router.patch("/{user_id}/role", response_model=UserMe, dependencies=[Depends(require_admin)])
async def update_user_role(user_id: int, body: UserRoleUpdate, db: SessionDep):
    """(관리자 전용) 사용자 역할 변경"""
    user = await user_service.get_user_by_id(user_id, db)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await user_service.set_role(db, user, body.role)
