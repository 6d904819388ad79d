from fastapi import FastAPI

from app.core.logging import configure_logging
from app.core.settings import settings
from app.middleware.request_id import RequestIdMiddleware
from app.routers.auth import router as auth_router
from app.routers.events import router as events_router
from app.routers.registrations import router as registrations_router
from app.routers.users import router as users_router
from app.startup import register_startup

configure_logging()

# served by uvicorn: `uvicorn app.main:app --reload`
app = FastAPI(title=settings.app_name)

app.add_middleware(RequestIdMiddleware)

register_startup(app)

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(users_router, tags=["users"])
app.include_router(events_router, tags=["events"])
app.include_router(registrations_router, tags=["registrations"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
