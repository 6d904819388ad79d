from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.event import ApprovalStatus


class EventCreate(BaseModel):
    event_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    location: str = Field(min_length=1, max_length=255)
    trending: bool = False
    registration_fee: float = Field(default=0, ge=0)
    event_start_date: datetime
    event_end_date: datetime
    description: str = Field(min_length=1)
    user_type: str = Field(min_length=1, max_length=50)
    status: bool = True
    event_type: str = Field(default="active", max_length=50)
    image: str = Field(min_length=1, max_length=512)

    @model_validator(mode="after")
    def _end_after_start(self) -> "EventCreate":
        if self.event_end_date < self.event_start_date:
            raise ValueError("event_end_date must not be before event_start_date")
        return self


class EventUpdate(BaseModel):
    event_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    trending: Optional[bool] = None
    registration_fee: Optional[float] = Field(default=None, ge=0)
    event_start_date: Optional[datetime] = None
    event_end_date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, min_length=1)
    user_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    status: Optional[bool] = None
    event_type: Optional[str] = Field(default=None, max_length=50)
    image: Optional[str] = Field(default=None, min_length=1, max_length=512)

    # every event column is NOT NULL; a field is either omitted or given a value
    @field_validator("*")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class EventOut(BaseModel):
    id: int
    user_id: int
    event_name: str
    email: str
    phone: str
    location: str
    trending: bool
    registration_fee: float
    event_start_date: datetime
    event_end_date: datetime
    description: str
    user_type: str
    status: bool
    event_type: str
    image: str
    approval: ApprovalStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RegistrationCreate(BaseModel):
    user_id: int
    event_id: int


class UserEventOut(BaseModel):
    id: int
    user_id: int
    event_id: int
    registered_at: datetime
    created_at: datetime
    updated_at: datetime
    event: Optional[EventOut] = None

    class Config:
        from_attributes = True
