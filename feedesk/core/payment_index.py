"""Which fee heads are already settled, derived from the transaction history."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from feedesk.core.schemas import Transaction, adm_key


@dataclass(frozen=True)
class PaidEntry:
    date: str
    receipt_no: str
    paid_on: Optional[datetime] = None


@dataclass(frozen=True)
class DuplicatePayment:
    adm_no: str
    fee_head: str
    receipt_nos: List[str]


def _is_newer(candidate: Optional[datetime], current: PaidEntry) -> bool:
    if candidate is None:
        return False
    return current.paid_on is None or candidate > current.paid_on


def build_payment_index(transactions: Iterable[Transaction], adm_no: str) -> Dict[str, PaidEntry]:
    """
    Latest effective payment per fee head for one student.

    Void rows never count. When a fee head was paid more than once the most
    recent parsed date wins; ties keep the first row seen.
    """
    key = adm_key(adm_no)
    index: Dict[str, PaidEntry] = {}
    if not key:
        return index
    for txn in transactions:
        if txn.is_void or adm_key(txn.adm_no) != key:
            continue
        head = txn.fee_head.strip()
        paid_on = txn.paid_on
        current = index.get(head)
        if current is None or _is_newer(paid_on, current):
            index[head] = PaidEntry(date=txn.date, receipt_no=txn.receipt_no or "", paid_on=paid_on)
    return index


def build_global_payment_index(transactions: Iterable[Transaction]) -> Dict[str, Set[str]]:
    """admission key -> fee heads with at least one effective payment."""
    index: Dict[str, Set[str]] = defaultdict(set)
    for txn in transactions:
        if txn.is_void:
            continue
        index[adm_key(txn.adm_no)].add(txn.fee_head.strip())
    return dict(index)


def find_duplicate_payments(transactions: Iterable[Transaction]) -> List[DuplicatePayment]:
    """(student, fee head) pairs settled by more than one effective receipt."""
    receipts: Dict[tuple, List[str]] = defaultdict(list)
    names: Dict[tuple, tuple] = {}
    for txn in transactions:
        if txn.is_void:
            continue
        pair = (adm_key(txn.adm_no), txn.fee_head.strip())
        names.setdefault(pair, (txn.adm_no.strip(), txn.fee_head.strip()))
        if txn.receipt_no not in receipts[pair]:
            receipts[pair].append(txn.receipt_no)
    return [
        DuplicatePayment(adm_no=names[pair][0], fee_head=names[pair][1], receipt_nos=nos)
        for pair, nos in receipts.items()
        if len(nos) > 1
    ]
