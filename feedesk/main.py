import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedesk.api.v1.audit.router import router as audit_router
from feedesk.api.v1.auth.router import router as auth_router
from feedesk.api.v1.bulk_payments.router import router as bulk_payments_router
from feedesk.api.v1.desk.router import router as desk_router
from feedesk.api.v1.desk.service import DeskRegistry, PaymentDesk
from feedesk.api.v1.ledger.router import router as ledger_router
from feedesk.api.v1.reminders.router import router as reminders_router
from feedesk.api.v1.reports.router import router as reports_router
from feedesk.api.v1.students.router import router as students_router
from feedesk.api.v1.transactions.router import router as transactions_router
from feedesk.core.config import settings
from feedesk.core.ledger import FeeLedger
from feedesk.db.session import create_tables
from feedesk.gateway.base import FeeBackend
from feedesk.gateway.client import SheetGateway

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Fee desk started against %s", settings.sheet_api_url)
    yield
    aclose = getattr(app.state.backend, "aclose", None)
    if aclose is not None:
        await aclose()


def create_app(backend: Optional[FeeBackend] = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Fee Desk", lifespan=lifespan)

    # CORS: allow the desk frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if backend is None:
        backend = SheetGateway(
            settings.sheet_api_url,
            settings.sheet_api_key,
            timeout=settings.sheet_timeout_seconds,
        )
    ledger = FeeLedger(backend)
    app.state.backend = backend
    app.state.ledger = ledger
    app.state.desks = DeskRegistry(
        lambda: PaymentDesk(
            ledger,
            backend,
            default_mode=settings.default_payment_mode,
            reset_delay=settings.desk_reset_delay_seconds,
            notice_seconds=settings.notice_seconds,
            country_code=settings.phone_country_code,
        ),
        max_idle=settings.access_token_expire_minutes * 60,
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(desk_router)
    app.include_router(transactions_router)
    app.include_router(bulk_payments_router)
    app.include_router(students_router)
    app.include_router(reports_router)
    app.include_router(reminders_router)
    app.include_router(ledger_router)
    app.include_router(audit_router)

    return app


app = create_app()
