from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.auth.schemas import SessionContext
from feedesk.auth.security import decode_access_token
from feedesk.auth.session import SessionStore
from feedesk.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_session(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Resolve the desk session from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    sid = payload.get("sid")
    if not sid:
        raise credentials_exception
    try:
        session_id = UUID(sid)
    except ValueError:
        raise credentials_exception

    ctx = await SessionStore(db).load(session_id)
    if ctx is None:
        raise credentials_exception
    return ctx
