# snooker_api/schemas/token.py
import uuid
from typing import Optional

from pydantic import BaseModel

from snooker_api.schemas.user import User


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session_id: str


class TokenPayload(BaseModel):
    sub: Optional[uuid.UUID] = None
    sid: Optional[str] = None
    type: Optional[str] = None


class LoginResponse(BaseModel):
    message: str
    requires_verification: bool = False
    email: Optional[str] = None
    otp_sent: Optional[bool] = None
    token: Optional[Token] = None
    user: Optional[User] = None
