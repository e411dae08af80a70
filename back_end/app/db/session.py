# app/db/session.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

# sqlite: requests run on threadpool threads
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    echo=False,   # SQL echo
    pool_pre_ping=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# request-scoped session dependency
def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_guard(db: Session, action: str):
    """Turn driver/connection failures into StoreUnavailable (no retry here)."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("store failure during %s: %s", action, e)
        raise StoreUnavailable() from e
