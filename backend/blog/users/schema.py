from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from ..models import CustomModel
from .models import Role

class UserBase(CustomModel):
    email: EmailStr = Field(..., json_schema_extra={"example": "user@example.com"})
    name: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "Jane Doe"})

class UserCreate(UserBase):
    password: str = Field(..., min_length=8, json_schema_extra={"example": "strongpassword123"})
    image: Optional[str] = None

class UserUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = None

class UserRoleUpdate(CustomModel):
    role: Role

class UserPublic(CustomModel):
    id: int
    name: str
    image: Optional[str] = None

class UserMe(UserBase):
    id: int
    image: Optional[str] = None
    bio: Optional[str] = None
    role: Role
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime
    last_login: Optional[datetime] = None
