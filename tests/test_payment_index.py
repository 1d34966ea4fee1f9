"""Unit tests for payment indexes and the ledger that memoises them."""

from decimal import Decimal

import pytest

from feedesk.core.ledger import FeeLedger
from feedesk.core.payment_index import (
    build_global_payment_index,
    build_payment_index,
    find_duplicate_payments,
)
from feedesk.core.schemas import Transaction


def _txn(**kwargs) -> Transaction:
    base = {"adm_no": "7", "fee_head": "Tuition", "amount": Decimal("100")}
    base.update(kwargs)
    return Transaction(**base)


def test_void_rows_never_count_as_paid() -> None:
    rows = [
        _txn(receipt_no="A", date="2024-01-01"),
        _txn(receipt_no="B", date="2024-02-01", void="Y"),
    ]
    index = build_payment_index(rows, "7")
    assert index["Tuition"].receipt_no == "A"
    assert index["Tuition"].date == "2024-01-01"


def test_latest_date_wins_and_ties_keep_first() -> None:
    rows = [
        _txn(receipt_no="A", date="2024-01-01"),
        _txn(receipt_no="B", date="2024-03-01"),
        _txn(receipt_no="C", date="2024-03-01"),
    ]
    assert build_payment_index(rows, "7")["Tuition"].receipt_no == "B"


def test_admission_number_is_trimmed_and_case_insensitive() -> None:
    rows = [_txn(adm_no=" ab12 ", receipt_no="A", date="2024-01-01")]
    assert "Tuition" in build_payment_index(rows, "AB12")
    assert build_payment_index(rows, "") == {}


def test_unparseable_dates_do_not_break_the_index() -> None:
    rows = [
        _txn(receipt_no="A", date="garbage"),
        _txn(receipt_no="B", date="2024-01-01"),
    ]
    assert build_payment_index(rows, "7")["Tuition"].receipt_no == "B"


def test_index_is_pure() -> None:
    rows = [_txn(receipt_no="A", date="2024-01-01"), _txn(fee_head="Bus", receipt_no="B", date="5/1/2024")]
    assert build_payment_index(rows, "7") == build_payment_index(rows, "7")


def test_global_index_and_duplicates() -> None:
    rows = [
        _txn(receipt_no="A", date="2024-01-01"),
        _txn(receipt_no="B", date="2024-02-01"),
        _txn(adm_no="8", receipt_no="C", date="2024-02-01", void="yes"),
    ]
    assert build_global_payment_index(rows) == {"7": {"Tuition"}}
    dups = find_duplicate_payments(rows)
    assert len(dups) == 1
    assert dups[0].receipt_nos == ["A", "B"]


@pytest.mark.asyncio
async def test_ledger_rebuilds_index_only_after_refresh(ledger: FeeLedger, backend) -> None:
    first = ledger.payment_index("102")
    assert ledger.payment_index("102") is first

    backend.transactions.append(
        Transaction(receipt_no="R9", date="2024-06-01", adm_no="102", fee_head="Transport", amount=Decimal("1200"))
    )
    await ledger.refresh_transactions()
    second = ledger.payment_index("102")
    assert second is not first
    assert set(second) == {"Tuition", "Transport"}


@pytest.mark.asyncio
async def test_ledger_lookups(ledger: FeeLedger) -> None:
    assert ledger.find_student(" 101 ").name == "Asha Verma"
    assert ledger.find_student("999") is None
    assert [f.fee_head for f in ledger.fee_heads_for("7 a")] == ["Tuition", "Transport"]
    assert ledger.modes() == ["All", "Cash", "UPI"]
    assert ledger.fee_heads_by_class()["All"] == ["Transport", "Tuition"]
