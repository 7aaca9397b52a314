import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from taskroster.config import DATABASE_URL, SQL_ECHO

# SQLite connections are shared with the request threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=SQL_ECHO,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE on user_pending_tasks unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_schema(bind=None):
    """Create the tasks, users and user_pending_tasks tables if missing."""
    # models register their tables on Base.metadata when imported
    from taskroster.models import task, user  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """One session per request; the routers commit, closing rolls back anything left."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
