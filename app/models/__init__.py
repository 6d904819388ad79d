# Importing any model registers all of them, so string relationships resolve.
from app.models.user import User
from app.models.session import AuthSession
from app.models.event import ApprovalStatus, Event, UserEvent

__all__ = ["User", "AuthSession", "ApprovalStatus", "Event", "UserEvent"]
