from datetime import datetime
from pydantic import EmailStr, Field

from ..models import CustomModel
from ..users.schema import UserMe

class SignUpRequest(CustomModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=100)
    image: str | None = None

class SignInRequest(CustomModel):
    email: EmailStr
    password: str

class SessionInfo(CustomModel):
    id: int
    user_id: int
    expires_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None

class CurrentSessionResponse(CustomModel):
    session: SessionInfo
    user: UserMe

class SessionResponse(CurrentSessionResponse):
    token: str
