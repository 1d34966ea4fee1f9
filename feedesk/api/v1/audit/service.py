"""Desk audit trail: written next to every money-affecting action, listed by admins."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.schemas import SessionContext
from feedesk.core.enums import AuditAction
from feedesk.core.models import DeskAuditLog

from .schemas import AuditEntryResponse


async def log_desk_audit(
    db: AsyncSession,
    action: AuditAction,
    session: SessionContext,
    receipt_no: Optional[str] = None,
    adm_no: Optional[str] = None,
    payload: Optional[dict] = None,
) -> None:
    entry = DeskAuditLog(
        action=action.value,
        receipt_no=receipt_no or None,
        adm_no=adm_no or None,
        payload=payload,
        session_id=session.session_id,
        performed_by_role=session.role.value,
    )
    db.add(entry)
    await db.commit()


async def list_audit_entries(
    db: AsyncSession,
    action: Optional[AuditAction] = None,
    receipt_no: Optional[str] = None,
    adm_no: Optional[str] = None,
    limit: int = 100,
) -> List[AuditEntryResponse]:
    q = select(DeskAuditLog)
    if action is not None:
        q = q.where(DeskAuditLog.action == action.value)
    if receipt_no:
        q = q.where(DeskAuditLog.receipt_no == receipt_no.strip())
    if adm_no:
        q = q.where(DeskAuditLog.adm_no == adm_no.strip())
    q = q.order_by(DeskAuditLog.created_at.desc()).limit(limit)
    result = await db.execute(q)
    return [AuditEntryResponse.model_validate(r) for r in result.scalars().all()]
