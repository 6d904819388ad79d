"""Authorization decisions: role requirements and resource ownership."""

from typing import Dict, FrozenSet, Iterable, Optional, Protocol

import structlog

from app.core.errors import ForbiddenError

logger = structlog.get_logger(__name__)

ADMIN_ROLE = "admin"
USER_ROLE = "user"

_ADMIN_ONLY: FrozenSet[str] = frozenset({ADMIN_ROLE})

# Operation name -> roles allowed to run it. Operations missing from this map
# carry no role restriction.
ROLE_REQUIREMENTS: Dict[str, FrozenSet[str]] = {
    "users": _ADMIN_ONLY,
    "user_by_email": _ADMIN_ONLY,
    "delete_user": _ADMIN_ONLY,
    "all_events": _ADMIN_ONLY,
    "approve_event": _ADMIN_ONLY,
    "reject_event": _ADMIN_ONLY,
    "user_event": _ADMIN_ONLY,
    "user_events": _ADMIN_ONLY,
}


class Actor(Protocol):
    id: int
    role: str


def required_roles(operation: str) -> Optional[FrozenSet[str]]:
    return ROLE_REQUIREMENTS.get(operation)


def check_roles(actor: Optional[Actor], roles: Optional[Iterable[str]]) -> None:
    """Raise ForbiddenError unless ``actor`` holds one of ``roles``.

    An empty or missing role set allows everyone, including anonymous callers.
    """
    if not roles:
        return
    allowed = sorted(roles)
    if actor is None:
        raise ForbiddenError("User not authenticated")
    if actor.role not in allowed:
        logger.info("access.role_denied", user_id=actor.id, role=actor.role, required=allowed)
        raise ForbiddenError(f"Access denied. Required roles: {', '.join(allowed)}")


def can_act(actor: Actor, resource_owner_id: int) -> bool:
    return actor.id == resource_owner_id or actor.role == ADMIN_ROLE


def ensure_can_act(actor: Actor, resource_owner_id: int, detail: str = "Forbidden") -> None:
    if not can_act(actor, resource_owner_id):
        logger.info("access.ownership_denied", user_id=actor.id, owner_id=resource_owner_id)
        raise ForbiddenError(detail)
