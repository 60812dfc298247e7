# (c) Copyright Datacraft, 2026
import logging

from sqlalchemy import create_engine, Engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy.orm import sessionmaker

from .base import Base

logger = logging.getLogger(__name__)


def create_db_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        # One shared connection keeps an in-memory database alive
        if ":memory:" in db_url or db_url.endswith("://"):
            return create_engine(
                db_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(db_url, connect_args={"check_same_thread": False})

    return create_engine(db_url, poolclass=NullPool)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Database schema ready on %s", engine.url.render_as_string(hide_password=True))
