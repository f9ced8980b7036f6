# snooker_api/schemas/user.py
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from snooker_api.schemas.validators import validate_image_url


class UserBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)


# Signup payload
class UserCreate(UserBase):
    email: EmailStr
    password: str = Field(..., min_length=6)


# Profile update
class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    profile_picture: Optional[str] = None

    @field_validator("profile_picture")
    @classmethod
    def check_picture(cls, v: Optional[str]) -> Optional[str]:
        return validate_image_url(v)


class UserInDBBase(UserBase):
    id: uuid.UUID
    email: EmailStr
    is_email_verified: bool
    profile_picture: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class User(UserInDBBase):
    full_name: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class AccountDelete(BaseModel):
    password: str
