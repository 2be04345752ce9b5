"""Read-only balance projections.

Nothing here writes.  A party's balance is::

    opening + outstanding sales - unallocated receipts
            + outstanding purchases - unallocated payments out

Allocated parts of a payment are already reflected in the invoices'
``balance_amount``; subtracting them again would count the payment twice.
An account's balance is its opening balance plus every live credit minus every
live debit in ``account_transactions``.

An open sales invoice is overdue once it is more than the party's
``min_due_days`` old; on exactly that day it is still within terms.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from .money import ZERO, to_money
from .records import CREDIT, PAYMENT_IN, PAYMENT_OUT, PURCHASE, SALES, stored_date
from .repository import LedgerRepository, invoice_table
from .store import LedgerStore

UNALLOCATED_PAYMENTS_SQL = """
    SELECT COALESCE(SUM(p.amount - COALESCE(alloc.allocated, 0)), 0) AS unallocated
    FROM payments p
    LEFT JOIN (
        SELECT payment_id, SUM(amount) AS allocated
        FROM payment_details
        WHERE NOT is_deleted
        GROUP BY payment_id
    ) alloc ON alloc.payment_id = p.id
    WHERE p.party_id = %s AND p.payment_type = %s AND NOT p.is_deleted
"""

DEFAULT_MIN_DUE_DAYS = 30

OPEN_SALES_WITH_TERMS_SQL = """
    SELECT s.party_id, s.invoice_date, s.balance_amount, p.min_due_days
    FROM sales_invoices s
    JOIN parties p ON p.id = s.party_id
    WHERE NOT s.is_cancelled AND NOT s.is_deleted AND s.balance_amount > 0
      AND NOT p.is_deleted
"""

ACCOUNT_MOVEMENT_SQL = """
    SELECT COALESCE(SUM(CASE WHEN transaction_type = %s THEN amount ELSE -amount END), 0) AS movement
    FROM account_transactions
    WHERE account_id = %s AND NOT is_deleted
"""


@dataclass(frozen=True)
class PartyBalance:
    opening_balance: Decimal
    outstanding_sales: Decimal
    payments_in: Decimal
    outstanding_purchases: Decimal
    payments_out: Decimal

    @property
    def total(self) -> Decimal:
        return to_money(
            self.opening_balance
            + self.outstanding_sales
            - self.payments_in
            + self.outstanding_purchases
            - self.payments_out
        )


@dataclass(frozen=True)
class OverdueSummary:
    overdue_count: int
    overdue_amount: Decimal


NOTHING_OVERDUE = OverdueSummary(overdue_count=0, overdue_amount=ZERO)


@dataclass(frozen=True)
class LedgerSummary:
    cash_balance: Decimal
    bank_balance: Decimal
    receivables: Decimal
    payables: Decimal


class BalanceCalculator:
    def __init__(self, store: LedgerStore, repository: LedgerRepository | None = None) -> None:
        self.store = store
        self.repository = repository or LedgerRepository(store)

    def _scalar(self, sql: str, params) -> Decimal:
        row = self.store.get(sql, params)
        if row is None:
            return ZERO
        value = next(iter(row.values()))
        return ZERO if value is None else to_money(value)

    def _outstanding(self, kind: str, party_id: int) -> Decimal:
        columns = invoice_table(kind)
        return self._scalar(
            f"SELECT COALESCE(SUM(balance_amount), 0) AS outstanding FROM {columns.table} "
            f"WHERE {columns.party_column} = %s AND NOT is_cancelled AND NOT is_deleted "
            "AND balance_amount > 0",
            [party_id],
        )

    def _unallocated(self, payment_type: str, party_id: int) -> Decimal:
        return self._scalar(UNALLOCATED_PAYMENTS_SQL, [party_id, payment_type])

    def party_components(self, party_id: int) -> PartyBalance:
        party = self.repository.get_party(party_id)
        return PartyBalance(
            opening_balance=party.opening_balance,
            outstanding_sales=self._outstanding(SALES, party_id),
            payments_in=self._unallocated(PAYMENT_IN, party_id),
            outstanding_purchases=self._outstanding(PURCHASE, party_id),
            payments_out=self._unallocated(PAYMENT_OUT, party_id),
        )

    def compute_party_balance(self, party_id: int) -> Decimal:
        return self.party_components(party_id).total

    def compute_account_balance(self, account_id: int) -> Decimal:
        account = self.repository.get_account(account_id)
        movement = self._scalar(ACCOUNT_MOVEMENT_SQL, [CREDIT, account_id])
        return to_money(account.opening_balance + movement)

    def overdue_by_party(
        self,
        as_of: Optional[date] = None,
        party_id: Optional[int] = None,
    ) -> dict[int, OverdueSummary]:
        """Overdue sales invoices per party; parties with none are left out."""

        as_of = as_of or timezone.localdate()
        sql, params = OPEN_SALES_WITH_TERMS_SQL, []
        if party_id is not None:
            sql += " AND s.party_id = %s"
            params.append(party_id)
        totals: dict[int, tuple[int, Decimal]] = {}
        for row in self.store.query(sql, params):
            terms = row["min_due_days"]
            terms = DEFAULT_MIN_DUE_DAYS if terms is None else int(terms)
            if (as_of - stored_date(row["invoice_date"])).days <= terms:
                continue
            key = int(row["party_id"])
            count, amount = totals.get(key, (0, ZERO))
            totals[key] = (count + 1, amount + to_money(row["balance_amount"]))
        return {
            key: OverdueSummary(overdue_count=count, overdue_amount=to_money(amount))
            for key, (count, amount) in totals.items()
        }

    def party_overdue(self, party_id: int, as_of: Optional[date] = None) -> OverdueSummary:
        self.repository.get_party(party_id)
        return self.overdue_by_party(as_of, party_id=party_id).get(party_id, NOTHING_OVERDUE)

    def summary(self) -> LedgerSummary:
        """Cash and bank totals plus receivables and payables across parties."""

        cash = bank = receivables = payables = ZERO
        for account_id in self.repository.live_account_ids():
            account = self.repository.get_account(account_id)
            balance = self.compute_account_balance(account_id)
            if account.account_type == "bank":
                bank += balance
            else:
                cash += balance
        for party_id in self.repository.live_party_ids():
            party = self.repository.get_party(party_id)
            balance = self.compute_party_balance(party_id)
            if balance <= 0:
                continue
            if party.party_type in ("customer", "both"):
                receivables += balance
            if party.party_type in ("supplier", "both"):
                payables += balance
        return LedgerSummary(
            cash_balance=to_money(cash),
            bank_balance=to_money(bank),
            receivables=to_money(receivables),
            payables=to_money(payables),
        )
