from contextlib import contextmanager
import os

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shortener.core.config import settings
from shortener.models.tables import Base


def _ensure_sqlite_path(url: str) -> None:
    if url.startswith("sqlite:///"):
        # Convert sqlite:///./data/dev.db -> ./data/dev.db
        path = url[len("sqlite:///") :]
        # Only create directory if path points to a file
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True, pool_recycle=3600)

    _ensure_sqlite_path(database_url)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def init_db(bind: Engine) -> None:
    Base.metadata.create_all(bind=bind)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Developer convenience: for SQLite dev DBs, ensure tables exist
if engine.dialect.name == "sqlite":
    try:
        init_db(engine)
    except SQLAlchemyError as e:
        # Non-fatal in case of race or permission issues; migrations can still run
        logger.warning(f"Could not create SQLite tables on start-up: {e}")


@contextmanager
def get_session(factory=SessionLocal):
    session = factory()
    try:
        yield session
    finally:
        session.close()
