import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.schemas import LoginRequest, LoginResponse, SessionInfo
from feedesk.auth.security import create_access_token
from feedesk.auth.session import SessionStore
from feedesk.core.config import settings
from feedesk.core.enums import Role
from feedesk.core.exceptions import GatewayError, ServiceError
from feedesk.gateway.base import FeeBackend

logger = logging.getLogger(__name__)

Identity = Tuple[str, Role, Optional[str]]


def resolve_access_code(code: str) -> Optional[Identity]:
    """
    Map a desk access code to (display name, role, class).

    principal code -> admin, accounts codes -> account,
    `teacher-<CLASS>` -> teacher confined to CLASS.
    """
    code = (code or "").strip().lower()
    if not code:
        return None
    if code == settings.principal_access_code.lower():
        return "Principal", Role.ADMIN, None
    if code in settings.accounts_codes:
        return "Accounts", Role.ACCOUNT, None
    prefix = settings.teacher_code_prefix.lower()
    if code.startswith(prefix):
        class_name = code[len(prefix):].strip().upper()
        if not class_name:
            raise ServiceError(
                "Teacher code must include class, e.g., teacher-7A",
                status.HTTP_400_BAD_REQUEST,
            )
        return f"Teacher {class_name}", Role.TEACHER, class_name
    return None


async def _server_identity(backend: FeeBackend, username: str, password: str) -> Optional[Identity]:
    try:
        result = await backend.login(username, password)
    except GatewayError as e:
        logger.warning("Server login failed for %r: %s", username, e.message)
        raise ServiceError("Invalid code or server login failed", status.HTTP_401_UNAUTHORIZED)
    if not result:
        return None
    try:
        role = Role(str(result.get("role") or "").lower())
    except ValueError:
        return None
    class_name = str(result.get("class") or "").strip().upper() or None
    return str(result.get("name") or username), role, class_name


async def login_user(db: AsyncSession, backend: FeeBackend, payload: LoginRequest) -> LoginResponse:
    identity = resolve_access_code(payload.code or payload.password or "")
    if identity is None and payload.username and payload.password:
        identity = await _server_identity(backend, payload.username.strip(), payload.password)
    if identity is None:
        raise ServiceError("Invalid code", status.HTTP_401_UNAUTHORIZED)

    name, role, class_name = identity
    ctx = await SessionStore(db).save(name, role, class_name)
    token = create_access_token(subject={"sid": str(ctx.session_id), "role": role.value})
    logger.info("Desk session opened for %s (%s)", name, role.value)
    return LoginResponse(
        access_token=token,
        session=SessionInfo(name=ctx.name, role=ctx.role, class_name=ctx.class_name),
        issued_at=datetime.now(timezone.utc),
    )
