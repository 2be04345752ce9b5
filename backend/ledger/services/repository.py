"""Row lookups shared by the calculator, recorder and reconciliation service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..exceptions import NotFound
from .records import (
    PURCHASE,
    SALES,
    Account,
    AccountEntry,
    Allocation,
    Expense,
    Invoice,
    Party,
    Payment,
)
from .store import LedgerStore


@dataclass(frozen=True)
class InvoiceTable:
    """Column names that differ between sales invoices and purchase bills."""

    table: str
    number_column: str
    party_column: str
    date_column: str
    detail_column: str
    sequence: str
    label: str

    def select(self) -> str:
        return (
            f"SELECT id, {self.number_column} AS number, {self.party_column} AS party_id, "
            f"{self.date_column} AS invoice_date, total_amount, paid_amount, balance_amount, "
            f"is_cancelled, is_deleted FROM {self.table}"
        )


INVOICE_TABLES = {
    SALES: InvoiceTable(
        table="sales_invoices",
        number_column="invoice_number",
        party_column="party_id",
        date_column="invoice_date",
        detail_column="sales_invoice_id",
        sequence="sales_invoice",
        label="Sales invoice",
    ),
    PURCHASE: InvoiceTable(
        table="purchase_invoices",
        number_column="bill_number",
        party_column="supplier_id",
        date_column="bill_date",
        detail_column="purchase_invoice_id",
        sequence="purchase_invoice",
        label="Purchase invoice",
    ),
}


def invoice_table(kind: str) -> InvoiceTable:
    try:
        return INVOICE_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown invoice kind {kind!r}")


class LedgerRepository:
    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def get_party(self, party_id: int) -> Party:
        row = self.store.get(
            "SELECT id, name, party_type, opening_balance, current_balance, min_due_days, is_deleted "
            "FROM parties WHERE id = %s AND NOT is_deleted",
            [party_id],
        )
        if row is None:
            raise NotFound("Party", party_id)
        return Party.from_row(row)

    def get_account(self, account_id: int) -> Account:
        row = self.store.get(
            "SELECT id, account_name, account_type, opening_balance, current_balance, is_deleted "
            "FROM accounts WHERE id = %s AND NOT is_deleted",
            [account_id],
        )
        if row is None:
            raise NotFound("Account", account_id)
        return Account.from_row(row)

    def get_payment(self, payment_id: int) -> Payment:
        row = self.store.get(
            "SELECT * FROM payments WHERE id = %s AND NOT is_deleted",
            [payment_id],
        )
        if row is None:
            raise NotFound("Payment", payment_id)
        return Payment.from_row(row)

    def get_invoice(self, kind: str, invoice_id: int) -> Invoice:
        columns = invoice_table(kind)
        row = self.store.get(f"{columns.select()} WHERE id = %s AND NOT is_deleted", [invoice_id])
        if row is None:
            raise NotFound(columns.label, invoice_id)
        return Invoice.from_row(kind, row)

    def open_invoices(self, kind: str, party_id: int) -> list[Invoice]:
        """Unpaid, live invoices of ``party_id``, oldest first."""

        columns = invoice_table(kind)
        rows = self.store.query(
            f"{columns.select()} WHERE {columns.party_column} = %s AND NOT is_cancelled "
            f"AND NOT is_deleted AND balance_amount > 0 ORDER BY {columns.date_column}, id",
            [party_id],
        )
        return [Invoice.from_row(kind, row) for row in rows]

    def allocations_for_payment(self, payment_id: int) -> list[Allocation]:
        rows = self.store.query(
            "SELECT id, payment_id, sales_invoice_id, purchase_invoice_id, amount "
            "FROM payment_details WHERE payment_id = %s AND NOT is_deleted ORDER BY id",
            [payment_id],
        )
        return [Allocation.from_row(row) for row in rows]

    def allocations_for_invoice(self, kind: str, invoice_id: int) -> list[Allocation]:
        columns = invoice_table(kind)
        rows = self.store.query(
            "SELECT id, payment_id, sales_invoice_id, purchase_invoice_id, amount "
            f"FROM payment_details WHERE {columns.detail_column} = %s AND NOT is_deleted ORDER BY id",
            [invoice_id],
        )
        return [Allocation.from_row(row) for row in rows]

    def get_account_entry(self, transaction_id: int) -> Optional[AccountEntry]:
        row = self.store.get("SELECT * FROM account_transactions WHERE id = %s", [transaction_id])
        return None if row is None else AccountEntry.from_row(row)

    def entries_for(self, reference_type: str, reference_id: int) -> list[AccountEntry]:
        """Live account entries written on behalf of one payment or expense."""

        rows = self.store.query(
            "SELECT * FROM account_transactions WHERE reference_type = %s AND reference_id = %s "
            "AND NOT is_deleted ORDER BY id",
            [reference_type, reference_id],
        )
        return [AccountEntry.from_row(row) for row in rows]

    def get_expense(self, expense_id: int) -> Expense:
        row = self.store.get("SELECT * FROM expenses WHERE id = %s AND NOT is_deleted", [expense_id])
        if row is None:
            raise NotFound("Expense", expense_id)
        return Expense.from_row(row)

    def _live_rows(self, table: str, column: str, pk: int) -> int:
        row = self.store.get(
            f"SELECT COUNT(*) AS live FROM {table} WHERE {column} = %s AND NOT is_deleted", [pk]
        )
        return int(row["live"])

    def party_references(self, party_id: int) -> dict[str, int]:
        """Live payments and invoices of a party, by table, omitting empty ones."""

        counts = {
            "payments": self._live_rows("payments", "party_id", party_id),
            "sales_invoices": self._live_rows("sales_invoices", "party_id", party_id),
            "purchase_invoices": self._live_rows("purchase_invoices", "supplier_id", party_id),
        }
        return {table: count for table, count in counts.items() if count}

    def account_references(self, account_id: int) -> dict[str, int]:
        counts = {
            "payments": self._live_rows("payments", "account_id", account_id),
            "expenses": self._live_rows("expenses", "account_id", account_id),
            "account_transactions": self._live_rows("account_transactions", "account_id", account_id),
        }
        return {table: count for table, count in counts.items() if count}

    def live_party_ids(self) -> list[int]:
        return [row["id"] for row in self.store.query("SELECT id FROM parties WHERE NOT is_deleted ORDER BY id")]

    def live_account_ids(self) -> list[int]:
        return [row["id"] for row in self.store.query("SELECT id FROM accounts WHERE NOT is_deleted ORDER BY id")]
