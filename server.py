"""FastAPI application for the business-crisis simulator."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env from repo root so CRISIS_* settings work when set locally
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crisis_engine.persistence import InMemoryFlagStore
from database import SessionLocal, check_connection, engine
from flag_store import SqlFlagStore
from models import Base
import sessions
from sessions import router as sessions_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: connect to DB and create tables, else fall back to an in-memory flag store."""
    if check_connection():
        try:
            Base.metadata.create_all(bind=engine)
            sessions.set_flag_store(SqlFlagStore(SessionLocal))
            logger.info("Database connected: tables ready, flag store persisted")
        except Exception as e:
            sessions.set_flag_store(InMemoryFlagStore())
            logger.warning("Database initialization failed: %s. Using in-memory flag store.", e)
    else:
        sessions.set_flag_store(InMemoryFlagStore())
        logger.warning("Database unavailable at startup. Using in-memory flag store.")

    yield

    # Cleanup on shutdown
    try:
        engine.dispose()
        logger.info("Database connection pool disposed")
    except Exception as e:
        logger.warning(f"Error disposing database connection pool: {e}")


app = FastAPI(title="Crisis Management Simulator", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router, prefix="/api/crisis", tags=["crisis"])


def check_db():
    """Test database connectivity."""
    return "connected" if check_connection(retry_count=1) else "disconnected"


@app.get("/health")
def health():
    """Health check for deploys and the frontend."""
    return {
        "status": "healthy",
        "database": check_db(),
        "flag_store": type(sessions.get_flag_store()).__name__,
    }
