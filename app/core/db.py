"""
Database engine, session handling and the shared connection manager
"""

import logging
import threading
from functools import lru_cache
from typing import Any, Callable, Generic, Optional, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")


class ConnectionManager(Generic[T]):
    """Holds one lazily created connection handle for the whole process.

    The first caller of ``get`` runs ``connect``; callers arriving while that
    attempt is in flight wait on the lock and reuse its result. A failed
    attempt leaves no handle behind, so the next ``get`` tries again.
    """

    def __init__(
        self,
        connect: Callable[[], T],
        close: Optional[Callable[[T], Any]] = None,
        name: str = "store",
    ):
        self._connect = connect
        self._close = close
        self._name = name
        self._handle: Optional[T] = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._handle is not None

    def get(self) -> T:
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._handle is None:
                try:
                    self._handle = self._connect()
                except Exception:
                    logger.error("Connection attempt to %s failed", self._name)
                    raise
                logger.info("Connected to %s", self._name)
            return self._handle

    def close(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None and self._close is not None:
            self._close(handle)
            logger.info("Closed connection to %s", self._name)


def create_sql_engine(url: Optional[str] = None) -> Engine:
    """Create an engine and make sure the database answers"""
    url = url or settings.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        engine.dispose()
        raise
    return engine


@lru_cache(maxsize=None)
def _sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _dispose_engine(engine: Engine) -> None:
    _sessionmaker.cache_clear()
    engine.dispose()


sql_connection: ConnectionManager[Engine] = ConnectionManager(
    create_sql_engine, close=_dispose_engine, name="sql database"
)


def session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """One sessionmaker per engine, the shared engine by default"""
    return _sessionmaker(engine or sql_connection.get())
