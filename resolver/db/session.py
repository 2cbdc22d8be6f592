# File: resolver/db/session.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from resolver.core.config import settings

def make_engine(url: str):
    if url.startswith("sqlite"):
        # sync endpoints run in a threadpool
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        pool_timeout=30
    )

engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
