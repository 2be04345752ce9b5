from .balances import BalanceCalculator, LedgerSummary, OverdueSummary, PartyBalance
from .locks import KeyedLock, process_locks
from .reconciliation import (
    PaymentRequest,
    RecalculationResult,
    ReconciliationPolicy,
    ReconciliationService,
    get_reconciliation_service,
)
from .recorder import TransactionRecorder
from .store import LedgerStore, RunResult

__all__ = [
    "BalanceCalculator",
    "KeyedLock",
    "LedgerStore",
    "LedgerSummary",
    "OverdueSummary",
    "PartyBalance",
    "PaymentRequest",
    "RecalculationResult",
    "ReconciliationPolicy",
    "ReconciliationService",
    "RunResult",
    "TransactionRecorder",
    "get_reconciliation_service",
    "process_locks",
]
