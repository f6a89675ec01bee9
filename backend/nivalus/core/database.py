from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from nivalus.core.config import settings

# SQLite needs cross-thread access because FastAPI runs sync dependencies in a threadpool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# Create database engine - manages connection pool
# pool_pre_ping drops connections the server closed while idle
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

# Create session factory - each request gets a new session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes, even when the
    handler raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping(db) -> None:
    """Run a trivial query; raises if the database is unreachable"""
    db.execute(text("SELECT 1"))
