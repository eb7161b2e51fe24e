"""Database session and engine management."""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from loguru import logger

from dreamic.config import settings


def _engine_options(database_url: str) -> dict:
    if make_url(database_url).get_backend_name() == "sqlite":
        # Sessions are opened from worker threads by the sql preferences store
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Keep objects usable after commit
)


def init_db() -> None:
    """Create the preferences table if it does not exist yet."""
    from dreamic.db.base import Base
    from dreamic.db.models import PreferenceEntry  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Preferences table ready", url=engine.url.render_as_string(hide_password=True))
