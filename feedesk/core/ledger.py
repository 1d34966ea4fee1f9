"""In-process cache of the three sheet datasets and the indexes derived from them."""

import asyncio
import logging
from typing import Dict, List, Optional, Set, Tuple

from feedesk.core.payment_index import (
    PaidEntry,
    build_global_payment_index,
    build_payment_index,
    find_duplicate_payments,
)
from feedesk.core.schemas import FeeHeadDefinition, Student, Transaction, adm_key, class_key
from feedesk.gateway.base import FeeBackend

logger = logging.getLogger(__name__)


class FeeLedger:
    """
    Students, fee heads and transactions as last read from the fee server.

    Payment indexes are memoised against `version`, which moves every time the
    transaction list is replaced, so they are rebuilt only after a refresh.
    """

    def __init__(self, backend: FeeBackend) -> None:
        self._backend = backend
        self._lock = asyncio.Lock()
        self.students: List[Student] = []
        self.fee_heads: List[FeeHeadDefinition] = []
        self.transactions: List[Transaction] = []
        self.loaded = False
        self.version = 0
        self._student_index: Dict[Tuple[int, str], Dict[str, PaidEntry]] = {}
        self._global_index: Optional[Tuple[int, Dict[str, Set[str]]]] = None

    async def load(self) -> None:
        async with self._lock:
            students, fee_heads, transactions = await asyncio.gather(
                self._backend.list_students(),
                self._backend.list_fee_heads(),
                self._backend.list_transactions(),
            )
            self.students = students
            self.fee_heads = fee_heads
            self._replace_transactions(transactions)
            self.loaded = True
        logger.info(
            "Loaded %d students, %d fee heads, %d transactions",
            len(students), len(fee_heads), len(transactions),
        )

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.load()

    async def refresh_transactions(self) -> List[Transaction]:
        transactions = await self._backend.list_transactions()
        self._replace_transactions(transactions)
        return transactions

    def _replace_transactions(self, transactions: List[Transaction]) -> None:
        self.transactions = list(transactions)
        self.version += 1
        self._student_index.clear()
        self._global_index = None
        for dup in find_duplicate_payments(self.transactions):
            logger.warning(
                "Fee head %r for admission %s settled by several receipts: %s",
                dup.fee_head, dup.adm_no, ", ".join(dup.receipt_nos),
            )

    # --- lookups ---
    def find_student(self, adm_no: str) -> Optional[Student]:
        key = adm_key(adm_no)
        return next((s for s in self.students if adm_key(s.adm_no) == key), None)

    def fee_heads_for(self, class_name: str) -> List[FeeHeadDefinition]:
        key = class_key(class_name)
        return [f for f in self.fee_heads if class_key(f.class_name) == key]

    def payment_index(self, adm_no: str) -> Dict[str, PaidEntry]:
        cache_key = (self.version, adm_key(adm_no))
        if cache_key not in self._student_index:
            self._student_index[cache_key] = build_payment_index(self.transactions, adm_no)
        return self._student_index[cache_key]

    def global_payment_index(self) -> Dict[str, Set[str]]:
        if self._global_index is None or self._global_index[0] != self.version:
            self._global_index = (self.version, build_global_payment_index(self.transactions))
        return self._global_index[1]

    def classes(self) -> List[str]:
        return sorted({s.class_name for s in self.students if s.class_name})

    def fee_heads_by_class(self) -> Dict[str, List[str]]:
        grouped: Dict[str, Set[str]] = {}
        for f in self.fee_heads:
            grouped.setdefault(f.class_name.strip(), set()).add(f.fee_head)
        out = {cls: sorted(heads) for cls, heads in grouped.items()}
        out["All"] = sorted({f.fee_head for f in self.fee_heads})
        return out

    def modes(self) -> List[str]:
        return ["All"] + sorted({t.mode.strip() for t in self.transactions if t.mode.strip()})
