from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class AuditEntryResponse(BaseModel):
    id: UUID
    action: str
    receipt_no: Optional[str] = None
    adm_no: Optional[str] = None
    payload: Optional[Any] = None
    session_id: Optional[UUID] = None
    performed_by_role: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
