from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.db.session import get_db
from app.models.event import ApprovalStatus, Event, UserEvent
from app.models.user import User
from app.schemas.event import RegistrationCreate, UserEventOut
from app.schemas.pagination import PageParams, page_params
from app.schemas.user import UserOut
from app.security.access import ensure_can_act
from app.security.guards import authenticate, authorize, current_user


router = APIRouter()


def _find_registration(db: Session, user_id: int, event_id: int) -> Optional[UserEvent]:
    return (
        db.query(UserEvent)
        .filter(UserEvent.user_id == user_id, UserEvent.event_id == event_id)
        .first()
    )


def _delete_registration(db: Session, registration: UserEvent) -> bool:
    db.delete(registration)
    db.commit()
    return True


@router.get("/registrations", response_model=List[UserEventOut], dependencies=[Depends(authorize("user_events"))])
def list_registrations(params: PageParams = Depends(page_params), db: Session = Depends(get_db)) -> List[UserEventOut]:
    return (
        db.query(UserEvent)
        .order_by(UserEvent.created_at.desc(), UserEvent.id.desc())
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )


@router.get("/registrations/me", response_model=List[UserEventOut], dependencies=[Depends(authenticate)])
def my_registrations(
    params: PageParams = Depends(page_params),
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> List[UserEventOut]:
    return (
        db.query(UserEvent)
        .filter(UserEvent.user_id == actor.id)
        .order_by(UserEvent.created_at.desc(), UserEvent.id.desc())
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )


@router.get("/registrations/{registration_id}", response_model=Optional[UserEventOut], dependencies=[Depends(authorize("user_event"))])
def get_registration(registration_id: int, db: Session = Depends(get_db)) -> Optional[UserEventOut]:
    return db.query(UserEvent).filter(UserEvent.id == registration_id).first()


@router.post(
    "/registrations",
    response_model=UserEventOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authenticate)],
)
def register_user_to_event(
    payload: RegistrationCreate,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> UserEventOut:
    ensure_can_act(actor, payload.user_id, "You can only register yourself for events")

    user: Optional[User] = db.query(User).filter(User.id == payload.user_id).first()
    if not user:
        raise NotFoundError(f"User with ID {payload.user_id} not found")

    event: Optional[Event] = (
        db.query(Event)
        .filter(
            Event.id == payload.event_id,
            Event.status.is_(True),
            Event.approval == ApprovalStatus.APPROVED,
        )
        .first()
    )
    if not event:
        raise NotFoundError(f"Event with ID {payload.event_id} not found or not approved")

    if _find_registration(db, user.id, event.id):
        raise ConflictError("User is already registered for this event")

    registration = UserEvent(user_id=user.id, event_id=event.id)
    db.add(registration)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request registered the same pair first
        db.rollback()
        raise ConflictError("User is already registered for this event")
    db.refresh(registration)
    return registration


@router.delete("/registrations", response_model=bool, dependencies=[Depends(authenticate)])
def unregister_user_from_event(
    user_id: int,
    event_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> bool:
    ensure_can_act(actor, user_id, "You can only unregister yourself from events")
    registration = _find_registration(db, user_id, event_id)
    if not registration:
        raise NotFoundError("Registration not found")
    return _delete_registration(db, registration)


@router.delete("/registrations/me/{event_id}", response_model=bool, dependencies=[Depends(authenticate)])
def unregister_from_event(
    event_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> bool:
    registration = _find_registration(db, actor.id, event_id)
    if not registration:
        raise NotFoundError("You are not registered for this event")
    return _delete_registration(db, registration)
