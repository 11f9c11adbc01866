import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import BigInteger, Integer, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.config import config

logger = logging.getLogger(__name__)

Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
IdType = BigInteger().with_variant(Integer, "sqlite")

SessionLocal = sessionmaker(autoflush=True, expire_on_commit=False)

engine: Optional[Engine] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def init_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create the process-wide engine and bind the session factory to it.

    In-memory SQLite databases get a StaticPool so every session sees the
    same connection (and therefore the same tables).
    """
    global engine

    url = url or config.database.url
    echo = config.database.echo if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {
            "pool_size": config.database.pool_size,
            "max_overflow": config.database.max_overflow,
            "pool_timeout": config.database.pool_timeout,
            "pool_recycle": config.database.pool_recycle,
            "pool_pre_ping": True,
        }

    engine = create_engine(url, echo=echo, future=True, **kwargs)
    SessionLocal.configure(bind=engine)
    logger.info(f"Database engine initialised for {engine.url.render_as_string(hide_password=True)}")
    return engine


def get_engine() -> Engine:
    if engine is None:
        return init_engine()
    return engine


def create_all() -> None:
    """Create every table registered on Base.metadata."""
    import storefront.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(get_engine())


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transactional scope for scripts: commit on success, roll back on error."""
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
