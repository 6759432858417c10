from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from opsdesk.models.enums import UserRole


class SignUp(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: str = ""
    company_name: str = ""


class SignIn(BaseModel):
    email: EmailStr
    password: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    password: str = Field(min_length=8)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str
    company_name: str
    role: UserRole
    created_at: datetime


class Session(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut


class RoleChange(BaseModel):
    role: UserRole
