from fastapi import Depends, HTTPException, status

from feedesk.auth.dependencies import get_current_session
from feedesk.auth.schemas import SessionContext
from feedesk.core.enums import Role


def require_roles(*roles: Role):
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        Depends(require_roles(Role.ADMIN, Role.ACCOUNT))
    """

    async def _checker(session: SessionContext = Depends(get_current_session)) -> SessionContext:
        if session.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return session

    return _checker


require_cashier = require_roles(Role.ADMIN, Role.ACCOUNT)
require_any_role = require_roles(Role.ADMIN, Role.ACCOUNT, Role.TEACHER)
