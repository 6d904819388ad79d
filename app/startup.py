from fastapi import FastAPI
import structlog

from app.core.settings import settings
from app.db.session import Base, SessionLocal, engine
from app.services.auth import purge_expired_sessions

logger = structlog.get_logger(__name__)


def register_startup(app: FastAPI) -> None:
    @app.on_event("startup")
    def _create_tables() -> None:
        Base.metadata.create_all(bind=engine)
        logger.info("app.starting", app_name=settings.app_name)

        if settings.purge_expired_sessions_on_startup:
            db = SessionLocal()
            try:
                purged = purge_expired_sessions(db)
            finally:
                db.close()
            logger.info("auth.expired_sessions_purged", count=purged)
