from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from consultant.logging_config import get_logger

logger = get_logger("database")

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create the engine for DATABASE_URL.

    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    import consultant.models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized", extra={"context": {"url": engine.url.render_as_string()}})
