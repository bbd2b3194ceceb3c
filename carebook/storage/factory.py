from typing import NamedTuple
import logging

from ..core.config import Settings
from ..core.database import create_db_engine, create_session_factory, init_db
from .base import BookingStore, UserStore
from .memory import InMemoryBookingStore, InMemoryUserStore
from .sql import SqlBookingStore, SqlUserStore

logger = logging.getLogger(__name__)


class Stores(NamedTuple):
    users: UserStore
    bookings: BookingStore


def build_stores(settings: Settings) -> Stores:
    """Create the stores selected by STORAGE_BACKEND."""
    if settings.uses_database:
        engine = create_db_engine(settings.DATABASE_URL)
        init_db(engine)
        session_factory = create_session_factory(engine)
        logger.info(f"Using database storage at {engine.url.render_as_string(hide_password=True)}")
        return Stores(users=SqlUserStore(session_factory), bookings=SqlBookingStore(session_factory))

    if settings.STORAGE_BACKEND.lower() != "memory":
        raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")

    logger.info("Using in-memory storage")
    return Stores(users=InMemoryUserStore(), bookings=InMemoryBookingStore())
