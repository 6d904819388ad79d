"""Request gates, wired in as FastAPI dependencies.

Every request gets one ``RequestContext`` (FastAPI caches a dependency's value
for the lifetime of a request). Guards are the only writers of ``user`` and
``token``; handlers read them back through ``current_user`` /
``current_token``.

Three gates exist:

* ``authenticate``: bearer token -> user, 401 on a missing or invalid token.
* ``require_roles(operation)``: role check against the user a previous gate
  attached, 403 when absent or not allowed. Only meaningful after
  ``authenticate``; compose the two with ``guard_pipeline``.
* ``authorize(operation)``: both steps fused into one dependency.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog
from fastapi import Depends, Request, Response
from fastapi.params import Depends as DependsParam
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.errors import UnauthorizedError
from app.db.session import get_db
from app.schemas.user import UserOut
from app.security.access import check_roles, required_roles
from app.services.auth import validate_token

logger = structlog.get_logger(__name__)

BEARER_SCHEME = "Bearer"

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    request: Request
    response: Response
    user: Optional[UserOut] = None
    token: Optional[str] = None


def get_request_context(request: Request, response: Response) -> RequestContext:
    return RequestContext(request=request, response=response)


def extract_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    authorization: Optional[str] = None,
) -> Optional[str]:
    """Token from parsed credentials; the scheme must be exactly ``Bearer``.

    ``HTTPBearer`` trims the credentials, so the raw header (when given) must
    equal ``"Bearer <token>"`` with a single separating space.
    """
    if credentials is None or credentials.scheme != BEARER_SCHEME:
        return None
    token = credentials.credentials
    if not token:
        return None
    if authorization is not None and authorization != f"{BEARER_SCHEME} {token}":
        return None
    return token


def _resolve_identity(
    ctx: RequestContext,
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
) -> None:
    token = extract_bearer_token(credentials, ctx.request.headers.get("authorization"))
    if not token:
        raise UnauthorizedError("Missing authentication token")

    user = validate_token(db, token)
    if user is None:
        logger.info("auth.token_rejected", path=ctx.request.url.path)
        raise UnauthorizedError("Invalid or expired token")

    ctx.user = UserOut.model_validate(user)
    ctx.token = token


def authenticate(
    ctx: RequestContext = Depends(get_request_context),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> RequestContext:
    _resolve_identity(ctx, credentials, db)
    return ctx


def require_roles(operation: str) -> Callable[..., RequestContext]:
    roles = required_roles(operation)

    def _role_guard(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        check_roles(ctx.user, roles)
        return ctx

    _role_guard.__name__ = f"require_roles_{operation}"
    return _role_guard


def authorize(operation: str) -> Callable[..., RequestContext]:
    roles = required_roles(operation)

    def _auth_and_role_guard(
        ctx: RequestContext = Depends(get_request_context),
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
        db: Session = Depends(get_db),
    ) -> RequestContext:
        _resolve_identity(ctx, credentials, db)
        check_roles(ctx.user, roles)
        return ctx

    _auth_and_role_guard.__name__ = f"authorize_{operation}"
    return _auth_and_role_guard


def guard_pipeline(*guards: Callable[..., RequestContext]) -> List[DependsParam]:
    """Route-level ``dependencies`` list; FastAPI runs them in the given order."""
    return [Depends(guard) for guard in guards]


def current_user(ctx: RequestContext = Depends(get_request_context)) -> UserOut:
    if ctx.user is None:
        raise UnauthorizedError("Missing authentication token")
    return ctx.user


def current_token(ctx: RequestContext = Depends(get_request_context)) -> str:
    if ctx.token is None:
        raise UnauthorizedError("Missing authentication token")
    return ctx.token
