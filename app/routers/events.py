from typing import List, Optional

from fastapi import APIRouter, Depends, Query as QueryParam, status
from sqlalchemy.orm import Query, Session

from app.core.errors import NotFoundError, ValidationError
from app.db.session import get_db
from app.models.event import ApprovalStatus, Event, UserEvent
from app.models.user import User
from app.schemas.event import EventCreate, EventOut, EventUpdate, UserEventOut
from app.schemas.pagination import Page, PageParams, page_params
from app.schemas.user import UserOut
from app.security.access import ensure_can_act
from app.security.guards import authenticate, authorize, current_user
from app.services.auth import to_aware_utc


router = APIRouter()


def _visible(query: Query) -> Query:
    return query.filter(Event.status.is_(True), Event.approval == ApprovalStatus.APPROVED)


def _get_event_or_404(db: Session, event_id: int) -> Event:
    event: Optional[Event] = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise NotFoundError(f"Event with ID {event_id} not found")
    return event


def _paginate(query: Query, params: PageParams) -> Page[EventOut]:
    total = query.count()
    events = query.offset(params.offset).limit(params.limit).all()
    return Page[EventOut].build([EventOut.model_validate(e) for e in events], total, params)


def _set_approval(db: Session, event_id: int, approval: ApprovalStatus) -> Event:
    event = _get_event_or_404(db, event_id)
    event.approval = approval
    db.commit()
    db.refresh(event)
    return event


@router.get("/events", response_model=Page[EventOut])
def list_events(
    trending: Optional[bool] = None,
    event_type: Optional[str] = None,
    user_type: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> Page[EventOut]:
    query = _visible(db.query(Event))
    if trending is not None:
        query = query.filter(Event.trending.is_(trending))
    if event_type:
        query = query.filter(Event.event_type == event_type)
    if user_type:
        query = query.filter(Event.user_type == user_type)
    return _paginate(query.order_by(Event.id), params)


@router.get("/events/all", response_model=Page[EventOut], dependencies=[Depends(authorize("all_events"))])
def list_all_events(
    trending: Optional[bool] = None,
    status_: Optional[bool] = QueryParam(default=None, alias="status"),
    approval: Optional[ApprovalStatus] = None,
    event_type: Optional[str] = None,
    user_type: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
) -> Page[EventOut]:
    query = db.query(Event)
    if trending is not None:
        query = query.filter(Event.trending.is_(trending))
    if status_ is not None:
        query = query.filter(Event.status.is_(status_))
    if approval is not None:
        query = query.filter(Event.approval == approval)
    if event_type:
        query = query.filter(Event.event_type == event_type)
    if user_type:
        query = query.filter(Event.user_type == user_type)
    return _paginate(query.order_by(Event.id), params)


@router.get("/events/trending", response_model=Page[EventOut])
def trending_events(params: PageParams = Depends(page_params), db: Session = Depends(get_db)) -> Page[EventOut]:
    query = _visible(db.query(Event)).filter(Event.trending.is_(True))
    return _paginate(query.order_by(Event.created_at.desc(), Event.id.desc()), params)


@router.get("/events/registered/{user_id}", response_model=Page[EventOut], dependencies=[Depends(authenticate)])
def user_registered_events(
    user_id: int,
    params: PageParams = Depends(page_params),
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> Page[EventOut]:
    ensure_can_act(actor, user_id, "You can only view your own registered events")
    query = (
        db.query(Event)
        .join(UserEvent, UserEvent.event_id == Event.id)
        .filter(UserEvent.user_id == user_id)
        .order_by(UserEvent.registered_at.desc(), UserEvent.id.desc())
    )
    return _paginate(query, params)


@router.get("/events/{event_id}", response_model=Optional[EventOut])
def get_event(event_id: int, db: Session = Depends(get_db)) -> Optional[EventOut]:
    return _visible(db.query(Event)).filter(Event.id == event_id).first()


@router.post(
    "/events",
    response_model=EventOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authenticate)],
)
def create_event(
    payload: EventCreate,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> EventOut:
    event = Event(user_id=actor.id, approval=ApprovalStatus.PENDING, **payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@router.patch("/events/{event_id}", response_model=EventOut, dependencies=[Depends(authenticate)])
def update_event(
    event_id: int,
    payload: EventUpdate,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> EventOut:
    event = _get_event_or_404(db, event_id)
    ensure_can_act(actor, event.user_id, "You can only update your own events")

    changes = payload.model_dump(exclude_unset=True)
    start = to_aware_utc(changes.get("event_start_date", event.event_start_date))
    end = to_aware_utc(changes.get("event_end_date", event.event_end_date))
    if end < start:
        raise ValidationError("event_end_date must not be before event_start_date")

    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/events/{event_id}", response_model=bool, dependencies=[Depends(authenticate)])
def delete_event(
    event_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> bool:
    event = _get_event_or_404(db, event_id)
    ensure_can_act(actor, event.user_id, "You can only delete your own events")
    db.delete(event)
    db.commit()
    return True


@router.post("/events/{event_id}/approve", response_model=EventOut, dependencies=[Depends(authorize("approve_event"))])
def approve_event(event_id: int, db: Session = Depends(get_db)) -> EventOut:
    return _set_approval(db, event_id, ApprovalStatus.APPROVED)


@router.post("/events/{event_id}/reject", response_model=EventOut, dependencies=[Depends(authorize("reject_event"))])
def reject_event(event_id: int, db: Session = Depends(get_db)) -> EventOut:
    return _set_approval(db, event_id, ApprovalStatus.REJECTED)


@router.get("/events/{event_id}/registrations", response_model=List[UserEventOut], dependencies=[Depends(authenticate)])
def event_registrations(
    event_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> List[UserEventOut]:
    event = _get_event_or_404(db, event_id)
    ensure_can_act(actor, event.user_id, "You can only view registrations for your own events")
    return (
        db.query(UserEvent)
        .filter(UserEvent.event_id == event.id)
        .order_by(UserEvent.registered_at, UserEvent.id)
        .all()
    )


@router.get("/events/{event_id}/users", response_model=List[UserOut], dependencies=[Depends(authenticate)])
def event_registered_users(
    event_id: int,
    actor: UserOut = Depends(current_user),
    db: Session = Depends(get_db),
) -> List[UserOut]:
    event = _get_event_or_404(db, event_id)
    ensure_can_act(actor, event.user_id, "You can only view attendees of your own events")
    return (
        db.query(User)
        .join(UserEvent, UserEvent.user_id == User.id)
        .filter(UserEvent.event_id == event.id)
        .order_by(UserEvent.registered_at, UserEvent.id)
        .all()
    )
