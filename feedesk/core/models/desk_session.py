"""Authenticated desk session: who is working the counter and in which role."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from feedesk.db.session import Base


class DeskSession(Base):
    """One login. Cleared (ended_at set) on logout."""

    __tablename__ = "desk_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)  # admin, account, teacher
    class_name = Column(String(50), nullable=True)  # teachers only
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
