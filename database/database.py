import contextlib
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.config_loader import get_config


def build_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """Create an engine for database_url and return a session factory bound to it."""
    if not database_url.startswith('sqlite'):
        engine_kwargs.setdefault('pool_pre_ping', True)  # Verify connections before using
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Process-wide session factory built from the application config."""
    config = get_config()
    if config.database.url.startswith('sqlite'):
        return build_session_factory(config.database.url)
    return build_session_factory(
        config.database.url,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )


@contextlib.contextmanager
def db_session_scope(session_factory: sessionmaker = None):
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
