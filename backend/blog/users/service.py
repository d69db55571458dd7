from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List, Optional

from passlib.context import CryptContext

from .models import User as UserModel, Role
from .schema import UserCreate, UserUpdate

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

async def create_user(user_data: UserCreate, db: AsyncSession, role: Role = Role.USER) -> UserModel:
    existing_user = await get_user_by_email(user_data.email, db)
    if existing_user:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    db_user = UserModel(
        name=user_data.name,
        email=user_data.email,
        image=user_data.image,
        hashed_password=pwd_context.hash(user_data.password),
        role=role,
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user

async def get_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[UserModel]:
    """모든 사용자 목록을 페이지네이션하여 조회합니다."""
    result = await db.execute(
        select(UserModel)
        .order_by(UserModel.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()

async def update_user(db: AsyncSession, db_user: UserModel, user_in: UserUpdate) -> UserModel:
    """명시적으로 값이 할당된 필드만 업데이트합니다."""
    update_data = user_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_user, field, value)

    await db.commit()
    await db.refresh(db_user)
    return db_user

async def set_role(db: AsyncSession, db_user: UserModel, role: Role) -> UserModel:
    db_user.role = role
    await db.commit()
    await db.refresh(db_user)
    return db_user

async def get_user_by_id(user_id: int, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    return result.scalar_one_or_none()

async def get_user_by_email(email: str, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.email == email))
    return result.scalar_one_or_none()

async def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)

async def update_last_login(user: UserModel, db: AsyncSession) -> None:
    # DB 서버 시간 기준으로 기록
    user.last_login = func.now()
    await db.commit()
    await db.refresh(user)
