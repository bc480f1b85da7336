"""
Database configuration and session management
"""

from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def use_immediate_transactions(bind: Engine) -> Engine:
    """Make SQLite take the write lock when a transaction begins.

    With deferred transactions two writers that both read first can
    deadlock on lock promotion and one fails with "database is locked".
    BEGIN IMMEDIATE makes them queue on the busy timeout instead.
    """
    @event.listens_for(bind, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return bind


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine, applying SQLite threading and locking settings"""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        # Route handlers run in the threadpool
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        return use_immediate_transactions(create_engine(url, connect_args=connect_args, **kwargs))
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.DATABASE_URL, echo=False)


def init_db(bind: Engine = None):
    """Initialize database tables"""
    # Import models so their tables are registered on the metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database tables created")


def get_session() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    with Session(engine) as session:
        yield session
