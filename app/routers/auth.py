from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.auth import LoginRequest, LoginResponse, LogoutResponse
from app.schemas.user import UserOut
from app.security.guards import authenticate, current_token, current_user
from app.services import auth as auth_service


router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)) -> LoginResponse:
    result = auth_service.login(
        db,
        payload.email,
        payload.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        message="Login successful",
        access_token=result.access_token,
        user=result.user,
        statusCode=200,
    )


@router.post("/logout", response_model=LogoutResponse, dependencies=[Depends(authenticate)])
def logout(token: str = Depends(current_token), db: Session = Depends(get_db)) -> LogoutResponse:
    result = auth_service.logout(db, token)
    return LogoutResponse(**result)


@router.get("/me", response_model=UserOut, dependencies=[Depends(authenticate)])
def me(user: UserOut = Depends(current_user)) -> UserOut:
    return user
