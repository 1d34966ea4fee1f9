from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, model_validator

from feedesk.core.enums import Role


class LoginRequest(BaseModel):
    """Either an access code or a username/password pair checked by the fee server."""

    code: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def validate_credentials(self) -> "LoginRequest":
        if not (self.code or "").strip() and not (self.password or "").strip():
            raise ValueError("Enter access code")
        return self


class SessionContext(BaseModel):
    """The authenticated desk session, injected into every service call that needs it."""

    session_id: UUID
    name: str
    role: Role
    class_name: Optional[str] = None

    @property
    def restricted_class(self) -> Optional[str]:
        """Class a restricted viewer is confined to; None for unrestricted roles."""
        if self.role == Role.TEACHER and self.class_name:
            return self.class_name
        return None


class SessionInfo(BaseModel):
    name: str
    role: Role
    class_name: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionInfo
    issued_at: datetime
