"""FastAPI dependencies for the process-wide fee server client, ledger and desks."""

from fastapi import HTTPException, Request

from feedesk.api.v1.desk.service import DeskRegistry
from feedesk.core.exceptions import GatewayError
from feedesk.core.ledger import FeeLedger
from feedesk.gateway.base import FeeBackend


def get_backend(request: Request) -> FeeBackend:
    return request.app.state.backend


async def get_ledger(request: Request) -> FeeLedger:
    """The shared ledger, loaded on first use."""
    ledger: FeeLedger = request.app.state.ledger
    try:
        await ledger.ensure_loaded()
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ledger


def get_desk_registry(request: Request) -> DeskRegistry:
    return request.app.state.desks
