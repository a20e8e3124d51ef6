"""Database connection for the crisis simulator."""
import os
import time
import logging
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env from project root (next to this file) so settings are ready regardless of cwd
load_dotenv(Path(__file__).resolve().parent / ".env")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///" + str(Path(__file__).resolve().parent / "crisis.db"),
)

# psycopg2 expects postgresql://; some hosts still hand out postgres://
if DATABASE_URL and DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL[len("postgres://") :]


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Requests are served from a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Test connections before using them
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_connection(retry_count=3, retry_delay=1):
    """
    Verify database is reachable with retry logic.

    Args:
        retry_count: Number of retry attempts
        retry_delay: Initial delay between retries (exponential backoff)

    Returns True if connected, False otherwise.
    """
    for attempt in range(retry_count):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if attempt > 0:
                logger.info(f"Database connection successful after {attempt + 1} attempts")
            return True
        except Exception as e:
            if attempt < retry_count - 1:
                wait_time = retry_delay * (2 ** attempt)
                logger.warning(f"Database connection attempt {attempt + 1} failed: {e}. Retrying in {wait_time}s...")
                time.sleep(wait_time)
            else:
                logger.error(f"Database connection failed after {retry_count} attempts: {e}")
    return False
