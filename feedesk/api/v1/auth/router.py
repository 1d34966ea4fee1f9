from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from feedesk.api.v1.desk.service import DeskRegistry
from feedesk.auth.dependencies import get_current_session
from feedesk.auth.schemas import LoginRequest, LoginResponse, SessionContext, SessionInfo
from feedesk.auth.services import ServiceError, login_user
from feedesk.auth.session import SessionStore
from feedesk.core.dependencies import get_backend, get_desk_registry
from feedesk.db.session import get_db
from feedesk.gateway.base import FeeBackend

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    backend: FeeBackend = Depends(get_backend),
) -> LoginResponse:
    try:
        return await login_user(db, backend, payload)
    except ServiceError as e:
        if e.status_code == http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail="Internal server error")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    backend: FeeBackend = Depends(get_backend),
):
    payload = LoginRequest(
        username=form_data.username.strip() or None,
        password=form_data.password,
    )
    try:
        result = await login_user(db, backend, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=SessionInfo)
async def read_me(session: SessionContext = Depends(get_current_session)) -> SessionInfo:
    return SessionInfo(name=session.name, role=session.role, class_name=session.class_name)


@router.post("/logout", status_code=http_status.HTTP_204_NO_CONTENT)
async def logout(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    registry: DeskRegistry = Depends(get_desk_registry),
) -> None:
    await SessionStore(db).clear(session.session_id)
    registry.discard(session.session_id)
