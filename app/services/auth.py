"""Session-based authentication: login, token validation, logout.

Sessions are rows keyed by an opaque token. Validation is a pure read; expired
rows stay in the table until logout or an explicit purge removes them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pydantic
import structlog
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import InternalError, NotFoundError, UnauthorizedError, ValidationError
from app.models.session import AuthSession
from app.models.user import User
from app.schemas.user import UserOut
from app.security.credentials import generate_session_token, normalize_email, verify_password

logger = structlog.get_logger(__name__)

SESSION_TTL = timedelta(hours=1)


class _Credentials(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


@dataclass
class LoginResult:
    access_token: str
    user: UserOut
    expires_at: datetime


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_credentials(email: Optional[str], password: Optional[str]) -> _Credentials:
    try:
        return _Credentials(email=email, password=password)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{field}: {first['msg']}")


def login(
    db: Session,
    email: Optional[str],
    password: Optional[str],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> LoginResult:
    credentials = _validate_credentials(email, password)
    normalized = normalize_email(credentials.email)

    user: Optional[User] = db.query(User).filter(func.lower(User.email) == normalized).first()
    if not user:
        logger.info("auth.login_failed", reason="unknown_email")
        raise NotFoundError("User does not exist.")

    if not verify_password(credentials.password, user.hashed_password):
        logger.info("auth.login_failed", reason="bad_password", user_id=user.id)
        raise UnauthorizedError("Invalid Password")

    sanitized = UserOut.model_validate(user)

    token = generate_session_token()
    expires_at = utcnow() + SESSION_TTL
    db.add(
        AuthSession(
            token=token,
            user_id=user.id,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    db.commit()

    logger.info("auth.login_succeeded", user_id=user.id)
    return LoginResult(access_token=token, user=sanitized, expires_at=expires_at)


def validate_token(db: Session, token: str) -> Optional[User]:
    """Return the owner of an unexpired session, or None."""
    session_row: Optional[AuthSession] = db.query(AuthSession).filter(AuthSession.token == token).first()
    if not session_row:
        return None
    if to_aware_utc(session_row.expires_at) < utcnow():
        return None
    return session_row.user


def logout(db: Session, token: str) -> dict:
    try:
        deleted = (
            db.query(AuthSession)
            .filter(AuthSession.token == token)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            raise NotFoundError("Session not found or already logged out")
        db.commit()
    except NotFoundError:
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("auth.logout_failed")
        raise InternalError("Error during logout")

    logger.info("auth.logout_succeeded")
    return {"statusCode": 200, "message": "Logout successful"}


def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    cutoff = now or utcnow()
    deleted = (
        db.query(AuthSession)
        .filter(AuthSession.expires_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
