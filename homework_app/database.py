"""Database configuration and session dependency."""

from typing import Iterator

from homework_app.config import settings
from sqlmodel import Session, SQLModel, create_engine

DATABASE_URL = settings.database_url

# SQLite needs check_same_thread disabled for FastAPI worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# echo=False to avoid noisy logs; toggle for debugging
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables() -> None:
    """Create database tables based on SQLModel metadata."""
    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""
    with Session(engine) as session:
        yield session
