# File: buildrelay/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from buildrelay.core.config.settings import settings

# The default SQLite file lives under DATA_DIR
settings.ensure_dirs()

# check_same_thread=False is needed only for SQLite (background tracking writes from a worker thread)
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Creates all registered tables. Safe to call repeatedly."""
    from buildrelay.core.database.base import Base
    import buildrelay.features.build_dispatch.data.sql_models  # noqa: F401 (registers the table)

    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for obtaining a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
