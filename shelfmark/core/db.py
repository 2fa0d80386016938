import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from shelfmark.configs import DB_URI, DEBUG
from shelfmark.core.exceptions import ShelfmarkError, DatabaseError

logger = logging.getLogger(__name__)

# Only use client_encoding for PostgreSQL, not SQLite
engine_kwargs = {'echo': DEBUG}
if DB_URI.startswith('sqlite'):
    # In-memory databases vanish per connection; keep exactly one around
    engine_kwargs['connect_args'] = {'check_same_thread': False}
    engine_kwargs['poolclass'] = StaticPool
else:
    engine_kwargs['client_encoding'] = 'utf8'
engine = create_engine(DB_URI, **engine_kwargs)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
# Thread-local session for scripts; requests open their own from SessionLocal
session = scoped_session(SessionLocal)


Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a session private to the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db, action, conflict=None):
    """Runs the block as one transaction: commit on success, roll back on
    any failure. Integrity violations surface as `conflict` when given.
    """
    try:
        yield db
        db.commit()
    except ShelfmarkError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation during {action}: {e.orig}")
        if conflict is not None:
            raise conflict(f"Failed to {action}: state changed concurrently")
        raise DatabaseError(f"Failed to {action}: {e.orig}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {action}: {e}")
        raise DatabaseError(f"Failed to {action}.")


def init():
    try:
        # Register every table on Base before creating them
        from shelfmark.core import models  # noqa: F401
        Base.metadata.create_all(bind=engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")
