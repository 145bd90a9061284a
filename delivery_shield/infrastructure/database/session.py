"""Database session management"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from delivery_shield.config import settings
from delivery_shield.infrastructure.database.models import Base
from delivery_shield.infrastructure.database.repositories import seed_sample_policies
from delivery_shield.infrastructure.embeddings import HashingEmbedder

# SQLite connections are shared with FastAPI's threadpool
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create tables and seed the default policy corpus"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_sample_policies(db, HashingEmbedder())
    finally:
        db.close()


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
