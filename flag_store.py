"""SQLAlchemy-backed store for the has-ever-lost flag."""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from models import FlagState

logger = logging.getLogger(__name__)

HAS_EVER_LOST_KEY = "has_ever_lost"


class SqlFlagStore:
    """Implements the crisis_engine FlagStore port on the flag_state table.

    ``session_factory`` is a callable returning a new SQLAlchemy session,
    typically ``database.SessionLocal``.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get_has_ever_lost(self) -> bool:
        db = self._session_factory()
        try:
            row = db.get(FlagState, HAS_EVER_LOST_KEY)
            return bool(row and row.value)
        finally:
            db.close()

    def set_has_ever_lost(self) -> None:
        db = self._session_factory()
        try:
            row = db.get(FlagState, HAS_EVER_LOST_KEY)
            if row:
                row.value = True
                row.updated_at = datetime.utcnow()
            else:
                db.add(FlagState(key=HAS_EVER_LOST_KEY, value=True, updated_at=datetime.utcnow()))
            db.commit()
            logger.info("Recorded first loss; relief options unlocked")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to persist {HAS_EVER_LOST_KEY}: {e}")
            raise
        finally:
            db.close()
