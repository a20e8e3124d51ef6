"""SQLAlchemy models for the crisis simulator."""
from datetime import datetime

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FlagState(Base):
    """Key-value store for process-wide player flags (has_ever_lost, ...)."""
    __tablename__ = "flag_state"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
