import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str):
    """Create an engine for ``database_url``.

    SQLite needs ``check_same_thread`` disabled because handlers run in a
    thread pool; a bare ``sqlite://`` URL is an in-memory database, which only
    survives across connections when every session shares one connection.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine):
    """Check the connection and create any missing tables.

    Raises ``SQLAlchemyError`` when the database cannot be reached.
    """
    # Ensure models are registered on Base before creating tables
    from cvetracker import models  # noqa: F401 - import for side-effects

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    Base.metadata.create_all(bind=engine)
    logger.info("database ready at %s", engine.url.render_as_string(hide_password=True))
