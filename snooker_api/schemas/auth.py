# snooker_api/schemas/auth.py
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from snooker_api.db.models.one_time_passcode import OTPPurpose
from snooker_api.schemas.user import User


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember_me: bool = False


class OTPVerify(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")
    purpose: OTPPurpose = OTPPurpose.SIGNUP
    remember_me: bool = False


class OTPResend(BaseModel):
    email: EmailStr
    purpose: OTPPurpose = OTPPurpose.SIGNUP


class EmailRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)
    new_password: str = Field(..., min_length=6)


class SignupResponse(BaseModel):
    message: str
    user_id: uuid.UUID
    email: EmailStr
    otp_sent: bool


class OTPSentResponse(BaseModel):
    message: str
    email: Optional[str] = None
    otp_sent: Optional[bool] = None


class MessageResponse(BaseModel):
    message: str
    count: Optional[int] = None


class DeviceInfo(BaseModel):
    user_agent: Optional[str] = None
    ip: Optional[str] = None
    platform: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None


class AuthSession(BaseModel):
    session_id: str
    device_info: DeviceInfo
    is_active: bool
    remember_me: bool
    created_at: Optional[datetime] = None
    last_activity: datetime
    expires_at: datetime
    is_current: bool = False

    class Config:
        from_attributes = True


class AuthSessionStatistics(BaseModel):
    total: int
    remember_me: int
    recently_active: int


class AuthSessionList(BaseModel):
    sessions: List[AuthSession]
    current_session_id: str
    statistics: AuthSessionStatistics


class LogoutSessionRequest(BaseModel):
    session_id: str


class ExtendSessionRequest(BaseModel):
    hours: int = Field(168, ge=1, le=720)


class ExtendSessionResponse(BaseModel):
    message: str
    new_expires_at: datetime
    hours_extended: int


class SessionInfo(BaseModel):
    session: AuthSession
    user: User
    hours_left: int
    is_expiring_soon: bool


class Me(BaseModel):
    user: User
    session: AuthSession
