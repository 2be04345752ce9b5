"""Append-only writes: payments, allocations, audit legs, expenses and adjustments.

The recorder never touches ``parties.current_balance`` or
``accounts.current_balance``; refreshing those caches is the reconciliation
service's job.  Methods that write several rows open their own unit of work so
they are atomic even when called directly.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from django.utils.dateparse import parse_date

from ..exceptions import (
    InvalidAllocation,
    InvalidAmount,
    NotFound,
    NotReversible,
    WrongPartyType,
)
from .balances import BalanceCalculator
from .money import parse_amount, to_money
from .records import (
    CREDIT,
    DEBIT,
    PAYMENT_IN,
    PAYMENT_TYPES,
    PURCHASE,
    SALES,
    AccountEntry,
    Allocation,
    Expense,
    Party,
    Payment,
)
from .repository import LedgerRepository, invoice_table
from .store import LedgerStore

logger = logging.getLogger(__name__)

PAYMENT_REFERENCE = "payment"
ADJUSTMENT_REFERENCE = "manual_adjustment"
TRANSFER_REFERENCE = "transfer"
EXPENSE_REFERENCE = "expense"

# Account legs that belong to another record and go away with it.
OWNED_REFERENCES = (PAYMENT_REFERENCE, EXPENSE_REFERENCE)

# Columns of ``payments`` that callers may set besides the core fields.
PAYMENT_META_FIELDS = ("payment_mode", "cheque_number", "cheque_date", "bank_ref", "notes")
EXPENSE_META_FIELDS = ("category", "payment_mode", "bill_number", "vendor_name", "notes")


def as_date(value: Any) -> date:
    """Accept a :class:`date` or an ISO ``YYYY-MM-DD`` string."""

    if isinstance(value, date):
        return value
    parsed = parse_date(str(value)) if value else None
    if parsed is None:
        raise ValueError(f"Invalid date {value!r}")
    return parsed


def _iso(value: Optional[Any]) -> Optional[str]:
    return None if value in (None, "") else as_date(value).isoformat()


def check_party_role(party: Party, kind: str) -> None:
    """Sales and receipts need a customer; purchases and payments out a supplier."""

    if kind == SALES and not party.is_customer:
        raise WrongPartyType(f"{party.name} is not a customer")
    if kind == PURCHASE and not party.is_supplier:
        raise WrongPartyType(f"{party.name} is not a supplier")


class TransactionRecorder:
    def __init__(
        self,
        store: LedgerStore,
        repository: LedgerRepository | None = None,
        calculator: BalanceCalculator | None = None,
    ) -> None:
        self.store = store
        self.repository = repository or LedgerRepository(store)
        self.calculator = calculator or BalanceCalculator(store, self.repository)

    # Payments ---------------------------------------------------------

    def record_payment(
        self,
        payment_type: str,
        party_id: int,
        account_id: Optional[int],
        amount: Any,
        payment_date: Any,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Insert a payment with its audit legs and return its id."""

        if payment_type not in PAYMENT_TYPES:
            raise ValueError(f"Unknown payment type {payment_type!r}")
        amount = parse_amount(amount)
        check_party_role(
            self.repository.get_party(party_id), SALES if payment_type == PAYMENT_IN else PURCHASE
        )
        if account_id is not None:
            self.repository.get_account(account_id)
        elif payment_type == PAYMENT_IN:
            raise NotFound("Account", account_id)
        meta = dict(meta or {})
        payment_date = as_date(payment_date)

        with self.store.atomic():
            number = self.store.get_next_sequence(payment_type)
            result = self.store.run(
                """
                INSERT INTO payments (
                    payment_type, payment_number, payment_date, party_id, account_id, amount,
                    payment_mode, cheque_number, cheque_date, bank_ref, notes,
                    is_deleted, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """,
                [
                    payment_type, number, payment_date.isoformat(), party_id, account_id, amount,
                    meta.get("payment_mode") or "cash", meta.get("cheque_number"),
                    _iso(meta.get("cheque_date")), meta.get("bank_ref"), meta.get("notes"),
                    False,
                ],
            )
            payment = self.repository.get_payment(result.id)
            self.write_payment_legs(payment, description=meta.get("description"))
        logger.info("Recorded %s %s of %s for party %s", payment_type, number, amount, party_id)
        return payment.id

    def write_payment_legs(self, payment: Payment, description: Optional[str] = None) -> None:
        """Write the payment's audit row and, with an account, its account leg."""

        description = description or f"{payment.payment_number} ({payment.payment_type})"
        with self.store.atomic():
            self.store.run(
                """
                INSERT INTO payment_transactions (
                    reference_type, reference_id, reference_number, party_id, account_id,
                    payment_type, amount, payment_date, payment_method, description, notes,
                    is_deleted, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP)
                """,
                [
                    PAYMENT_REFERENCE, payment.id, payment.payment_number, payment.party_id,
                    payment.account_id, payment.payment_type, payment.amount,
                    payment.payment_date.isoformat(), payment.payment_mode, description,
                    payment.notes, False,
                ],
            )
            if payment.account_id is not None:
                signed = payment.amount if payment.account_direction == CREDIT else -payment.amount
                self._append_account_entry(
                    payment.account_id,
                    signed,
                    reference_type=PAYMENT_REFERENCE,
                    reference_id=payment.id,
                    when=payment.payment_date,
                    description=description,
                )

    def void_payment_legs(self, payment_id: int) -> None:
        self.store.transaction(
            [
                (
                    "UPDATE payment_transactions SET is_deleted = %s "
                    "WHERE reference_type = %s AND reference_id = %s AND NOT is_deleted",
                    [True, PAYMENT_REFERENCE, payment_id],
                ),
                (
                    "UPDATE account_transactions SET is_deleted = %s "
                    "WHERE reference_type = %s AND reference_id = %s AND NOT is_deleted",
                    [True, PAYMENT_REFERENCE, payment_id],
                ),
            ]
        )

    def void_payment(self, payment_id: int) -> None:
        """Soft-delete the payment row together with its audit legs."""

        with self.store.atomic():
            self.void_payment_legs(payment_id)
            self.store.run(
                "UPDATE payments SET is_deleted = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
                [True, payment_id],
            )

    def rewrite_payment(self, payment_id: int, fields: Mapping[str, Any]) -> Payment:
        """Overwrite the editable columns of a live payment; the number is kept."""

        amount = parse_amount(fields["amount"])
        current = self.repository.get_payment(payment_id)
        check_party_role(self.repository.get_party(fields["party_id"]), current.invoice_kind)
        account_id = fields.get("account_id")
        if account_id is not None:
            self.repository.get_account(account_id)
        self.store.run(
            """
            UPDATE payments SET
                party_id = %s, account_id = %s, amount = %s, payment_date = %s,
                payment_mode = %s, cheque_number = %s, cheque_date = %s, bank_ref = %s,
                notes = %s, updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND NOT is_deleted
            """,
            [
                fields["party_id"], account_id, amount, as_date(fields["payment_date"]).isoformat(),
                fields.get("payment_mode") or "cash", fields.get("cheque_number"),
                _iso(fields.get("cheque_date")), fields.get("bank_ref"), fields.get("notes"),
                payment_id,
            ],
        )
        return self.repository.get_payment(payment_id)

    # Allocations ------------------------------------------------------

    def allocate(self, payment: Payment, allocations: Iterable[tuple[int, Any]]) -> list[int]:
        """Settle invoices of the payment's party with parts of the payment.

        Receipts settle sales invoices and payments out settle purchase bills.
        Returns the ids of the created ``payment_details`` rows.
        """

        columns = invoice_table(payment.invoice_kind)
        allocated = self._allocated_total(payment.id)
        detail_ids = []
        with self.store.atomic():
            for invoice_id, raw_amount in allocations:
                amount = parse_amount(raw_amount)
                invoice = self.repository.get_invoice(payment.invoice_kind, invoice_id)
                if invoice.party_id != payment.party_id:
                    raise InvalidAllocation(
                        f"{columns.label} {invoice.number} does not belong to party {payment.party_id}"
                    )
                if invoice.is_cancelled:
                    raise InvalidAllocation(f"{columns.label} {invoice.number} is cancelled")
                if amount > invoice.balance_amount:
                    raise InvalidAllocation(
                        f"Allocation {amount} exceeds the outstanding {invoice.balance_amount} "
                        f"on {invoice.number}"
                    )
                allocated += amount
                if allocated > payment.amount:
                    raise InvalidAllocation(
                        f"Allocations total {allocated} exceeds payment amount {payment.amount}"
                    )
                result = self.store.run(
                    f"INSERT INTO payment_details (payment_id, {columns.detail_column}, amount, is_deleted, created_at) "
                    "VALUES (%s, %s, %s, %s, CURRENT_TIMESTAMP)",
                    [payment.id, invoice.id, amount, False],
                )
                self._shift_invoice(columns.table, invoice.id, -amount)
                detail_ids.append(result.id)
        return detail_ids

    def _allocated_total(self, payment_id: int) -> Decimal:
        return sum(
            (alloc.amount for alloc in self.repository.allocations_for_payment(payment_id)),
            Decimal("0.00"),
        )

    def _shift_invoice(self, table: str, invoice_id: int, delta: Decimal) -> None:
        """Move ``delta`` onto an invoice's outstanding balance (negative = paid)."""

        self.store.run(
            f"UPDATE {table} SET balance_amount = balance_amount + %s, "
            "paid_amount = paid_amount - %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            [delta, delta, invoice_id],
        )

    def _release(self, allocations: list[Allocation]) -> list[Allocation]:
        with self.store.atomic():
            for alloc in allocations:
                self._shift_invoice(invoice_table(alloc.kind).table, alloc.invoice_id, alloc.amount)
                self.store.run(
                    "UPDATE payment_details SET is_deleted = %s WHERE id = %s",
                    [True, alloc.id],
                )
        return allocations

    def release_allocations(self, payment_id: int) -> list[Allocation]:
        """Hand a payment's allocations back to their invoices."""

        return self._release(self.repository.allocations_for_payment(payment_id))

    def release_invoice_allocations(self, kind: str, invoice_id: int) -> list[Allocation]:
        """Detach every payment allocated to one invoice."""

        return self._release(self.repository.allocations_for_invoice(kind, invoice_id))

    # Account entries --------------------------------------------------

    def _append_account_entry(
        self,
        account_id: int,
        signed_amount: Decimal,
        *,
        reference_type: str,
        reference_id: Optional[int],
        when: date,
        description: Optional[str],
    ) -> int:
        # Snapshots come from the derived balance, not the cached column.
        before = self.calculator.compute_account_balance(account_id)
        after = to_money(before + signed_amount)
        result = self.store.run(
            """
            INSERT INTO account_transactions (
                account_id, reference_type, reference_id, transaction_type, amount,
                balance_before, balance_after, transaction_date, description,
                is_deleted, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP)
            """,
            [
                account_id, reference_type, reference_id,
                CREDIT if signed_amount > 0 else DEBIT, abs(signed_amount),
                before, after, when.isoformat(), description, False,
            ],
        )
        return result.id

    def record_account_adjustment(
        self,
        account_id: int,
        signed_amount: Any,
        reason: Optional[str],
        when: Any,
    ) -> int:
        """Record a manual deposit (positive) or withdrawal (negative)."""

        amount = parse_amount(signed_amount, allow_negative=True)
        self.repository.get_account(account_id)
        with self.store.atomic():
            entry_id = self._append_account_entry(
                account_id,
                amount,
                reference_type=ADJUSTMENT_REFERENCE,
                reference_id=None,
                when=as_date(when),
                description=reason,
            )
        logger.info("Recorded adjustment %s on account %s", amount, account_id)
        return entry_id

    def record_transfer(
        self,
        source_id: int,
        target_id: int,
        amount: Any,
        description: Optional[str],
        when: Any,
    ) -> tuple[int, int]:
        """Move money between two accounts; the legs point at each other."""

        amount = parse_amount(amount)
        if source_id == target_id:
            raise InvalidAllocation("A transfer needs two different accounts.")
        self.repository.get_account(source_id)
        self.repository.get_account(target_id)
        when = as_date(when)
        with self.store.atomic():
            out_id = self._append_account_entry(
                source_id, -amount, reference_type=TRANSFER_REFERENCE, reference_id=None,
                when=when, description=description,
            )
            in_id = self._append_account_entry(
                target_id, amount, reference_type=TRANSFER_REFERENCE, reference_id=out_id,
                when=when, description=description,
            )
            self.store.run(
                "UPDATE account_transactions SET reference_id = %s WHERE id = %s",
                [in_id, out_id],
            )
        return out_id, in_id

    def reverse_transaction(self, transaction_id: int) -> list[AccountEntry]:
        """Soft-delete an account transaction and return the entries reversed.

        Reversing one leg of a transfer reverses both.  Reversing an entry that
        is already reversed changes nothing and returns an empty list.
        """

        entry = self.repository.get_account_entry(transaction_id)
        if entry is None:
            raise NotFound("Account transaction", transaction_id)
        if entry.reference_type in OWNED_REFERENCES:
            raise NotReversible(
                f"Account transaction {transaction_id} belongs to {entry.reference_type} "
                f"{entry.reference_id}; edit or delete the {entry.reference_type} instead."
            )
        if entry.is_deleted:
            return []
        entries = [entry]
        if entry.reference_type == TRANSFER_REFERENCE and entry.reference_id is not None:
            partner = self.repository.get_account_entry(entry.reference_id)
            if partner is not None and not partner.is_deleted:
                entries.append(partner)
        with self.store.atomic():
            for item in entries:
                self.store.run(
                    "UPDATE account_transactions SET is_deleted = %s WHERE id = %s",
                    [True, item.id],
                )
        return entries

    # Expenses ---------------------------------------------------------

    def record_expense(
        self,
        account_id: int,
        amount: Any,
        expense_date: Any,
        description: str,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Insert an expense and debit its account; returns the expense id."""

        amount = parse_amount(amount)
        self.repository.get_account(account_id)
        meta = dict(meta or {})
        with self.store.atomic():
            number = self.store.get_next_sequence(EXPENSE_REFERENCE)
            result = self.store.run(
                """
                INSERT INTO expenses (
                    expense_number, expense_date, category, description, amount, account_id,
                    payment_mode, bill_number, vendor_name, notes,
                    is_deleted, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """,
                [
                    number, as_date(expense_date).isoformat(), meta.get("category"), description,
                    amount, account_id, meta.get("payment_mode") or "cash", meta.get("bill_number"),
                    meta.get("vendor_name"), meta.get("notes"), False,
                ],
            )
            expense = self.repository.get_expense(result.id)
            self.write_expense_leg(expense)
        logger.info("Recorded expense %s of %s from account %s", number, amount, account_id)
        return expense.id

    def write_expense_leg(self, expense: Expense) -> int:
        return self._append_account_entry(
            expense.account_id,
            -expense.amount,
            reference_type=EXPENSE_REFERENCE,
            reference_id=expense.id,
            when=expense.expense_date,
            description=f"{expense.expense_number} {expense.description}",
        )

    def void_expense_legs(self, expense_id: int) -> None:
        self.store.run(
            "UPDATE account_transactions SET is_deleted = %s "
            "WHERE reference_type = %s AND reference_id = %s AND NOT is_deleted",
            [True, EXPENSE_REFERENCE, expense_id],
        )

    def rewrite_expense(self, expense_id: int, fields: Mapping[str, Any]) -> Expense:
        amount = parse_amount(fields["amount"])
        self.repository.get_account(fields["account_id"])
        self.store.run(
            """
            UPDATE expenses SET
                account_id = %s, amount = %s, expense_date = %s, description = %s, category = %s,
                payment_mode = %s, bill_number = %s, vendor_name = %s, notes = %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND NOT is_deleted
            """,
            [
                fields["account_id"], amount, as_date(fields["expense_date"]).isoformat(),
                fields["description"], fields.get("category"), fields.get("payment_mode") or "cash",
                fields.get("bill_number"), fields.get("vendor_name"), fields.get("notes"),
                expense_id,
            ],
        )
        return self.repository.get_expense(expense_id)

    def void_expense(self, expense_id: int) -> None:
        with self.store.atomic():
            self.void_expense_legs(expense_id)
            self.store.run(
                "UPDATE expenses SET is_deleted = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
                [True, expense_id],
            )

    # Invoices and opening balances -------------------------------------

    def record_invoice(
        self,
        kind: str,
        party_id: int,
        total_amount: Any,
        invoice_date: Any,
        notes: Optional[str] = None,
    ) -> int:
        columns = invoice_table(kind)
        total = parse_amount(total_amount)
        check_party_role(self.repository.get_party(party_id), kind)
        with self.store.atomic():
            number = self.store.get_next_sequence(columns.sequence)
            result = self.store.run(
                f"""
                INSERT INTO {columns.table} (
                    {columns.number_column}, {columns.party_column}, {columns.date_column},
                    total_amount, paid_amount, balance_amount, notes,
                    is_cancelled, is_deleted, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """,
                [number, party_id, as_date(invoice_date).isoformat(), total, Decimal("0.00"), total,
                 notes, False, False],
            )
        return result.id

    def mark_invoice(
        self,
        kind: str,
        invoice_id: int,
        *,
        cancelled: Optional[bool] = None,
        deleted: Optional[bool] = None,
    ) -> None:
        columns = invoice_table(kind)
        assignments, params = [], []
        if cancelled is not None:
            assignments.append("is_cancelled = %s")
            params.append(cancelled)
        if deleted is not None:
            assignments.append("is_deleted = %s")
            params.append(deleted)
        if not assignments:
            return
        self.store.run(
            f"UPDATE {columns.table} SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            params + [invoice_id],
        )

    def set_opening_balance(self, table: str, pk: int, amount: Any) -> None:
        if table not in ("parties", "accounts"):
            raise ValueError(f"Opening balances live on parties or accounts, not {table!r}")
        if amount in (None, "") or isinstance(amount, bool):
            raise InvalidAmount("Opening balance is required.")
        try:
            amount = to_money(amount)
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f"Opening balance {amount!r} is not a valid number.")
        self.store.run(
            f"UPDATE {table} SET opening_balance = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            [amount, pk],
        )
