import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool workers
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database"""
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url.endswith(":memory:"):
        return
    directory = os.path.dirname(url[len(prefix):])
    if directory:
        os.makedirs(directory, exist_ok=True)


try:
    _ensure_sqlite_directory(DATABASE_URL)
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,  # Test connections before using
        connect_args=_connect_args(DATABASE_URL),
        echo=DB_ECHO,
    )
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise


def configure_sqlite(sqlite_engine) -> None:
    """
    Enable foreign keys and make every transaction take the write lock at BEGIN.

    pysqlite defers BEGIN until the first write, so an overlap check and the
    insert after it would not run under one lock. Here SQLAlchemy emits
    ``BEGIN IMMEDIATE`` itself; other databases rely on ``SELECT ... FOR UPDATE``.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


if engine.dialect.name == "sqlite":
    configure_sqlite(engine)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
