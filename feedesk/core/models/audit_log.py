"""Desk audit log: append-only record of payment and receipt changes."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from feedesk.db.session import Base


class DeskAuditLog(Base):
    """Immutable audit trail for money-affecting desk actions."""

    __tablename__ = "desk_audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(String(30), nullable=False)  # PAYMENT, DUPLICATE_REJECTED, VOID, UNVOID, BULK_PAYMENT
    receipt_no = Column(String(50), nullable=True, index=True)
    adm_no = Column(String(50), nullable=True, index=True)
    payload = Column(JSON, nullable=True)
    session_id = Column(Uuid, nullable=True)
    performed_by_role = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
