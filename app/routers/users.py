from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.db.session import get_db
from app.models.session import AuthSession
from app.models.user import User
from app.models.event import UserEvent
from app.schemas.event import UserEventOut
from app.schemas.pagination import Page, PageParams, page_params
from app.schemas.session import SessionOut
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.security.access import ADMIN_ROLE, USER_ROLE, ensure_can_act
from app.security.credentials import hash_password, normalize_email
from app.security.guards import authenticate, authorize, current_user, guard_pipeline, require_roles


router = APIRouter()


def _get_user_or_404(db: Session, user_id: int) -> User:
    user: Optional[User] = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User).filter(func.lower(User.email) == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        # the unique email index caught a concurrent registration
        db.rollback()
        raise ConflictError("Email already registered")


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)) -> UserOut:
    email = normalize_email(payload.email)
    if _email_taken(db, email):
        raise ConflictError("Email already registered")

    user = User(
        name=payload.name,
        email=email,
        phone=payload.phone,
        hashed_password=hash_password(payload.password),
        role=USER_ROLE,
        age=payload.age,
        image=payload.image,
    )
    db.add(user)
    _commit_or_conflict(db)
    db.refresh(user)
    return user


@router.get("/users", response_model=Page[UserOut], dependencies=[Depends(authorize("users"))])
def list_users(
    role: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> Page[UserOut]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    total = query.count()
    users = query.order_by(User.id).offset(params.offset).limit(params.limit).all()
    return Page[UserOut].build([UserOut.model_validate(u) for u in users], total, params)


@router.get("/users/by-email", response_model=Optional[UserOut], dependencies=[Depends(authorize("user_by_email"))])
def user_by_email(email: str, db: Session = Depends(get_db)) -> Optional[UserOut]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


@router.get("/users/{user_id}", response_model=Optional[UserOut])
def get_user(user_id: int, db: Session = Depends(get_db)) -> Optional[UserOut]:
    return db.query(User).filter(User.id == user_id).first()


@router.patch(
    "/users/{user_id}",
    response_model=UserOut,
    dependencies=guard_pipeline(authenticate, require_roles("update_user")),
)
def update_user(
    user_id: int,
    payload: UserUpdate,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> UserOut:
    ensure_can_act(actor, user_id, "You can only update your own profile")
    user = _get_user_or_404(db, user_id)

    changes = payload.model_dump(exclude_unset=True)
    if "role" in changes and changes["role"] != user.role and actor.role != ADMIN_ROLE:
        raise ForbiddenError("Only admins can change roles")
    if "email" in changes and changes["email"] is not None:
        changes["email"] = normalize_email(changes["email"])
        if _email_taken(db, changes["email"], exclude_id=user.id):
            raise ConflictError("Email already registered")

    for field, value in changes.items():
        setattr(user, field, value)
    _commit_or_conflict(db)
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", response_model=bool, dependencies=[Depends(authorize("delete_user"))])
def delete_user(user_id: int, db: Session = Depends(get_db)) -> bool:
    user: Optional[User] = db.query(User).filter(User.id == user_id).first()
    if not user:
        return False
    db.delete(user)
    db.commit()
    return True


@router.get("/users/{user_id}/registrations", response_model=List[UserEventOut], dependencies=[Depends(authenticate)])
def user_registrations(
    user_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> List[UserEventOut]:
    ensure_can_act(actor, user_id, "You can only view your own registrations")
    return (
        db.query(UserEvent)
        .filter(UserEvent.user_id == user_id)
        .order_by(UserEvent.created_at.desc(), UserEvent.id.desc())
        .all()
    )


@router.get("/users/{user_id}/sessions", response_model=List[SessionOut], dependencies=[Depends(authenticate)])
def user_sessions(
    user_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> List[SessionOut]:
    ensure_can_act(actor, user_id, "You can only view your own sessions")
    return (
        db.query(AuthSession)
        .filter(AuthSession.user_id == user_id)
        .order_by(AuthSession.created_at.desc(), AuthSession.id.desc())
        .all()
    )
