"""Session store: the explicit save / load / clear lifecycle of a desk session."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.schemas import SessionContext
from feedesk.core.enums import Role
from feedesk.core.models import DeskSession


def _to_context(row: DeskSession) -> SessionContext:
    return SessionContext(
        session_id=row.id,
        name=row.name,
        role=Role(row.role),
        class_name=row.class_name,
    )


class SessionStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def save(self, name: str, role: Role, class_name: Optional[str] = None) -> SessionContext:
        row = DeskSession(name=name, role=role.value, class_name=class_name or None)
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return _to_context(row)

    async def load(self, session_id: UUID) -> Optional[SessionContext]:
        row = await self.db.get(DeskSession, session_id)
        if row is None or row.ended_at is not None:
            return None
        row.last_seen_at = datetime.utcnow()
        await self.db.commit()
        return _to_context(row)

    async def clear(self, session_id: UUID) -> None:
        row = await self.db.get(DeskSession, session_id)
        if row is None or row.ended_at is not None:
            return
        row.ended_at = datetime.utcnow()
        await self.db.commit()
