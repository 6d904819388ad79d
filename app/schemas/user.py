from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=6)
    age: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, max_length=512)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role: Optional[str] = Field(default=None, min_length=1, max_length=20)
    age: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, max_length=512)

    @field_validator("name", "email", "phone", "role")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class UserOut(BaseModel):
    """Outward view of a user. Has no password field by construction."""

    id: int
    name: str
    email: str
    phone: str
    role: str
    age: Optional[int] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
