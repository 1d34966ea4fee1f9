import os

os.environ.setdefault("SHEET_API_URL", "https://sheet.test/exec")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional, Set, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import feedesk.core.models  # noqa: F401
from feedesk.core.exceptions import GatewayError
from feedesk.core.ledger import FeeLedger
from feedesk.core.schemas import (
    BatchReceipt,
    BulkPaymentRequest,
    BulkPaymentResult,
    FeeHeadDefinition,
    PaymentBatchRequest,
    PaymentCheck,
    Student,
    Transaction,
)
from feedesk.db.session import Base, get_db
from feedesk.main import create_app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeBackend:
    """In-memory stand-in for the fee sheet server."""

    def __init__(
        self,
        students: Optional[List[Student]] = None,
        fee_heads: Optional[List[FeeHeadDefinition]] = None,
        transactions: Optional[List[Transaction]] = None,
    ) -> None:
        self.students = list(students or [])
        self.fee_heads = list(fee_heads or [])
        self.transactions = list(transactions or [])
        self.paid_checks: Dict[Tuple[str, str], PaymentCheck] = {}
        self.failing_checks: Set[str] = set()
        self.check_calls: List[Tuple[str, str]] = []
        self.submitted: List[PaymentBatchRequest] = []
        self.submit_error: Optional[Exception] = None
        self.next_receipt = 171234
        self.fail_transactions = False
        self.bulk_requests: List[BulkPaymentRequest] = []
        self.logins: Dict[Tuple[str, str], dict] = {}

    async def list_students(self) -> List[Student]:
        return list(self.students)

    async def list_fee_heads(self) -> List[FeeHeadDefinition]:
        return list(self.fee_heads)

    async def list_transactions(self) -> List[Transaction]:
        if self.fail_transactions:
            raise GatewayError("HTTP 500")
        return list(self.transactions)

    async def check_payment_status(self, adm_no: str, fee_head: str) -> PaymentCheck:
        self.check_calls.append((adm_no, fee_head))
        if fee_head in self.failing_checks:
            raise GatewayError("HTTP 503")
        return self.paid_checks.get((adm_no, fee_head), PaymentCheck(ok=True, is_paid=False))

    async def submit_payment_batch(self, request: PaymentBatchRequest) -> BatchReceipt:
        self.submitted.append(request)
        if self.submit_error is not None:
            raise self.submit_error
        receipt_no = str(self.next_receipt)
        self.next_receipt += 1
        for item in request.items:
            self.transactions.append(
                Transaction(
                    receipt_no=receipt_no,
                    date=request.date,
                    adm_no=request.adm_no,
                    name=request.name,
                    class_name=request.class_name,
                    fee_head=item.fee_head,
                    amount=item.amount,
                    fine=item.fine,
                    mode=request.mode,
                )
            )
        return BatchReceipt(receipt_no=receipt_no, date=request.date)

    def _set_void(self, receipt_no: str, flag: str) -> None:
        for i, t in enumerate(self.transactions):
            if t.receipt_no == receipt_no:
                self.transactions[i] = t.model_copy(update={"void": flag})

    async def void_receipt(self, receipt_no: str) -> None:
        self._set_void(receipt_no, "Y")

    async def unvoid_receipt(self, receipt_no: str) -> None:
        self._set_void(receipt_no, "")

    async def bulk_payment(self, request: BulkPaymentRequest) -> BulkPaymentResult:
        self.bulk_requests.append(request)
        return BulkPaymentResult(
            receipts_generated=len(request.payments),
            successful_payments=[{"admNo": p.adm_no} for p in request.payments],
            date=request.date,
        )

    async def login(self, username: str, password: str) -> Optional[dict]:
        return self.logins.get((username, password))


def sample_students() -> List[Student]:
    return [
        Student(adm_no="101", name="Asha Verma", class_name="7A", phone="9876543210"),
        Student(adm_no="102", name="Ravi Kumar", class_name="7 A", phone=""),
        Student(adm_no="201", name="Meera Shah", class_name="8B", phone="919812345678"),
    ]


def sample_fee_heads() -> List[FeeHeadDefinition]:
    return [
        FeeHeadDefinition(class_name="7A", fee_head="Tuition", amount=Decimal("5000"), due_date=date(2024, 4, 10)),
        FeeHeadDefinition(class_name="7A", fee_head="Transport", amount=Decimal("1200"), due_date=date(2024, 5, 10)),
        FeeHeadDefinition(class_name="8B", fee_head="Tuition", amount=Decimal("5500"), due_date=date(2024, 4, 10)),
    ]


def sample_transactions() -> List[Transaction]:
    return [
        Transaction(
            receipt_no="R1", date="2024-04-05", adm_no="102", name="Ravi Kumar", class_name="7A",
            fee_head="Tuition", amount=Decimal("5000"), fine=Decimal("0"), mode="Cash",
        ),
        Transaction(
            receipt_no="R2", date="2024-04-20", adm_no="201", name="Meera Shah", class_name="8B",
            fee_head="Tuition", amount=Decimal("5500"), fine=Decimal("25"), mode="UPI",
        ),
        Transaction(
            receipt_no="R3", date="2024-05-01", adm_no="101", name="Asha Verma", class_name="7A",
            fee_head="Transport", amount=Decimal("1200"), fine=Decimal("0"), mode="Cash", void="Y",
        ),
    ]


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend(sample_students(), sample_fee_heads(), sample_transactions())


@pytest.fixture()
async def ledger(backend: FakeBackend) -> FeeLedger:
    ledger = FeeLedger(backend)
    await ledger.load()
    return ledger


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def app(backend: FakeBackend, db_session: AsyncSession):
    app = create_app(backend)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture()
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def login_as(client: AsyncClient):
    """Log in with an access code and return the bearer header."""

    async def _login(code: str) -> Dict[str, str]:
        response = await client.post("/api/v1/auth/login", json={"code": code})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
