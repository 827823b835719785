from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from typing import Generator
import logging
import sys

from core.config import settings

logger = logging.getLogger(__name__)

# ============================================================
# ✅ Database URL setup (PostgreSQL preferred)
# ============================================================
DATABASE_URL = settings.DATABASE_URL

if not DATABASE_URL:
    # Fallback for local dev (sqlite)
    DATABASE_URL = "sqlite:///./projex.db"
    logger.warning("⚠️ DATABASE_URL not found, using local SQLite database.")
else:
    logger.info("✅ Using database from environment.")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# ============================================================
# ✅ Create SQLModel engine
# ============================================================
# For PostgreSQL, pool_pre_ping avoids stale connections
engine = create_engine(
    DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args,
)


# ============================================================
# ✅ Create tables (called at startup)
# ============================================================
def create_db_and_tables() -> None:
    """
    Create all database tables based on SQLModel models.
    This runs automatically at app startup.
    """
    # Registers every table on SQLModel.metadata
    import models.models  # noqa: F401

    try:
        SQLModel.metadata.create_all(engine)
        logger.info("✅ All database tables created successfully.")
    except Exception as e:
        logger.error(f"❌ Failed to create tables: {e}")
        raise


def init_db_or_exit() -> None:
    """Standalone bootstrap: verify connectivity, create tables, exit(1) on failure."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        create_db_and_tables()
        logger.info("✅ Database connected: %s", engine.url.render_as_string(hide_password=True))
    except SQLAlchemyError as e:
        logger.error(f"❌ Database connection error: {e}")
        sys.exit(1)


# ============================================================
# ✅ Dependency: FastAPI session generator
# ============================================================
def get_session() -> Generator[Session, None, None]:
    """
    Provides a SQLModel Session to FastAPI dependencies.
    Closes automatically after request completes.
    """
    with Session(engine) as session:
        yield session
