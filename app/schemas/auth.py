from typing import Optional

from pydantic import BaseModel

from app.schemas.user import UserOut


class LoginRequest(BaseModel):
    # shape is checked by the auth service so malformed credentials map to 400
    email: str
    password: str


class LoginResponse(BaseModel):
    message: str
    access_token: Optional[str] = None
    user: Optional[UserOut] = None
    statusCode: int


class LogoutResponse(BaseModel):
    message: str
    statusCode: int
