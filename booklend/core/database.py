import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger("booklend.database")

Base = declarative_base()


def _engine_options(url: str, timeout: float) -> dict:
    if url.startswith("sqlite"):
        # timeout bounds how long a writer waits on a locked database file
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    return {"pool_timeout": timeout, "pool_pre_ping": True}


class Database:
    """Owns the engine and session factory for one running application."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.engine = create_engine(url, **_engine_options(url, timeout))
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _sqlite_pragmas)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # model module registers its tables on Base.metadata
        from booklend.models import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ready")

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections closed")


def _sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
