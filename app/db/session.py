"""Local database session configuration"""

import logging
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def create_local_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine backing the local durable store.

    SQLite files get WAL journaling so a crashed process never leaves a
    half-written state row behind. Nothing connects here; tables are created
    on first use by the store.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        # The store may be touched from the event loop and from threadpool routes
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using them
        connect_args=connect_args,
        echo=echo,  # Set to True to see SQL queries in logs
    )

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            """Enable WAL on every new SQLite connection"""
            cursor = dbapi_conn.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
            finally:
                cursor.close()
            logger.debug("New local database connection created")

    @event.listens_for(engine, "invalidate")
    def on_invalidate(dbapi_conn, connection_record, exception):
        """Log when a connection is invalidated"""
        logger.warning(
            f"Local database connection invalidated: {exception}",
            exc_info=exception
        )

    logger.info(f"Local timer store configured at {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the local engine"""
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def dispose_engine(engine: Optional[Engine]) -> None:
    """Close pooled connections; safe to call with None"""
    if engine is not None:
        engine.dispose()
