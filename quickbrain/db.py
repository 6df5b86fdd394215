"""SQLite engine and session handling for the SQL note store."""
from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
import logging
import os

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from . import models  # noqa: F401  registers the tables on SQLModel.metadata

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".quickbrain" / "quickbrain.db"

_engine: Engine | None = None
_engine_url: str | None = None


def db_path() -> Path:
    """QUICKBRAIN_DB_PATH, read on every call so tests can repoint it."""
    env_path = os.getenv("QUICKBRAIN_DB_PATH")
    path = Path(env_path) if env_path else DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_engine() -> Engine:
    global _engine, _engine_url
    url = f"sqlite:///{db_path()}"
    if _engine is None or _engine_url != url:
        if _engine is not None:
            _engine.dispose()
        # the API serves sync routes from a threadpool
        _engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
        _engine_url = url
        logger.debug("opened %s", url)
    return _engine


def reset_engine() -> None:
    """Drop the cached engine; the next call re-reads QUICKBRAIN_DB_PATH."""
    global _engine, _engine_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None


def init_db() -> None:
    SQLModel.metadata.create_all(get_engine())


def get_session() -> Session:
    # returned models keep their values after the session commits
    return Session(get_engine(), expire_on_commit=False)


@contextmanager
def session_scope():
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
