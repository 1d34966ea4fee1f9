"""Audit router: admin-only listing of desk audit rows."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.rbac import require_roles
from feedesk.core.enums import AuditAction, Role
from feedesk.db.session import get_db

from .schemas import AuditEntryResponse
from . import service

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.get(
    "",
    response_model=List[AuditEntryResponse],
    dependencies=[Depends(require_roles(Role.ADMIN))],
)
async def list_audit_entries(
    action: Optional[AuditAction] = Query(None),
    receipt_no: Optional[str] = Query(None),
    adm_no: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> List[AuditEntryResponse]:
    return await service.list_audit_entries(db, action, receipt_no, adm_no, limit)
