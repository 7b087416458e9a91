"""
Database engine, session factory and schema bootstrap
"""
import logging
import os
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy.orm import declarative_base, sessionmaker
from adsync.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def resolve_database_url(url: str) -> str:
    """Pin relative SQLite file paths to the current directory at startup"""
    if url.startswith("sqlite:///") and not url.startswith("sqlite:////"):
        rel_path = url[len("sqlite:///"):]
        if rel_path and rel_path != ":memory:":
            return "sqlite:///" + os.path.abspath(rel_path)
    return url


def engine_options(url: str) -> dict:
    """create_engine kwargs for the configured backend"""
    if not url.startswith("sqlite"):
        return {
            "pool_pre_ping": True,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_recycle": settings.db_pool_recycle,
        }

    # Scheduler and API share the file; wait for writers instead of failing fast
    connect_args = {"check_same_thread": False, "timeout": settings.db_sqlite_busy_timeout}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, or every session would see its own empty database
        return {"connect_args": connect_args, "poolclass": StaticPool}
    return {"connect_args": connect_args, "poolclass": NullPool}


DATABASE_URL = resolve_database_url(settings.database_url)
engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _migrate_missing_columns():
    """Add model columns missing from existing tables (e.g. campaigns.external_id on old databases)"""
    inspector = inspect(engine)
    with engine.connect() as conn:
        for table_name, table in Base.metadata.tables.items():
            if not inspector.has_table(table_name):
                continue
            existing = {c["name"] for c in inspector.get_columns(table_name)}
            for col in table.columns:
                if col.name not in existing:
                    col_type = col.type.compile(dialect=engine.dialect)
                    sql = f'ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}'
                    logger.info(f"Auto-migrating: {sql}")
                    conn.execute(text(sql))
        conn.commit()


def init_db():
    """Create missing tables and columns; alembic owns real migrations"""
    # Registers every model on Base.metadata
    import adsync.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    _migrate_missing_columns()
