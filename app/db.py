from urllib.parse import urlparse
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from typing import Generator

from app.config import settings

# -----------------------
# DATABASE URL
# -----------------------
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL.strip()

if not SQLALCHEMY_DATABASE_URL:
    raise RuntimeError(
        "DATABASE_URL is not set. Please set a valid Postgres or SQLite URL."
    )

parsed = urlparse(SQLALCHEMY_DATABASE_URL)
if not (parsed.scheme.startswith("postgresql") or parsed.scheme.startswith("sqlite")):
    raise RuntimeError(
        f"Unsupported DATABASE_URL scheme '{parsed.scheme}'. Only Postgres and SQLite are supported."
    )

# -----------------------
# SQLAlchemy Engine
# -----------------------
engine_kwargs = {"future": True, "echo": False}
if parsed.scheme.startswith("sqlite"):
    # FastAPI runs sync handlers in a threadpool
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(pool_pre_ping=True, pool_recycle=300)

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

# Base for ALL models
Base = declarative_base()


# -----------------------
# Dependency
# -----------------------
def get_db() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
