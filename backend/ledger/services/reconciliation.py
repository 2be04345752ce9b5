"""Orchestration of payment, invoice, expense and adjustment operations.

Every public method of :class:`ReconciliationService` is one unit of work:
it holds the keyed locks of each party, account and payment it touches, runs
all of its writes inside ``store.atomic()`` and finishes by writing the
calculator's output back to the cached ``current_balance`` columns.  Failures
propagate to the caller after the database rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from django.utils import timezone

from ..conf import ledger_settings
from ..exceptions import ExceedsOutstanding, InUse, NotFound
from .balances import BalanceCalculator
from .locks import KeyedLock, process_locks
from .money import parse_amount
from .records import (
    PAYMENT_IN,
    PAYMENT_OUT,
    PAYMENT_TYPES,
    PURCHASE,
    SALES,
    AccountEntry,
    Expense,
    Invoice,
    Payment,
)
from .recorder import (
    EXPENSE_META_FIELDS,
    PAYMENT_META_FIELDS,
    TransactionRecorder,
    as_date,
    check_party_role,
)
from .repository import LedgerRepository
from .store import LedgerStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"party_id", "account_id", "amount", "payment_date", "description", "allocations"}
    | set(PAYMENT_META_FIELDS)
)


@dataclass
class PaymentRequest:
    payment_type: str
    party_id: int
    account_id: Optional[int]
    amount: Any
    payment_date: Any = None
    payment_mode: str = "cash"
    cheque_number: Optional[str] = None
    cheque_date: Any = None
    bank_ref: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    # ``[(invoice_id, amount), ...]``; ``None`` lets the policy decide.
    allocations: Optional[list[tuple[int, Any]]] = None

    def meta(self) -> dict:
        return {
            "payment_mode": self.payment_mode,
            "cheque_number": self.cheque_number,
            "cheque_date": self.cheque_date,
            "bank_ref": self.bank_ref,
            "notes": self.notes,
            "description": self.description,
        }


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Switches that change how payments are validated and allocated."""

    enforce_outstanding_on_edit: bool = False
    auto_allocate: bool = True

    @classmethod
    def from_settings(cls) -> "ReconciliationPolicy":
        config = ledger_settings()
        return cls(
            enforce_outstanding_on_edit=bool(config["ENFORCE_OUTSTANDING_ON_EDIT"]),
            auto_allocate=bool(config["AUTO_ALLOCATE"]),
        )


@dataclass
class RecalculationResult:
    parties: dict[int, Decimal] = field(default_factory=dict)
    accounts: dict[int, Decimal] = field(default_factory=dict)


def _today() -> date:
    return timezone.localdate()


def _party_key(party_id):
    return None if party_id is None else ("party", party_id)


def _account_key(account_id):
    return None if account_id is None else ("account", account_id)


def _describe(references: Mapping[str, int]) -> str:
    return ", ".join(f"{count} live {table.replace('_', ' ')}" for table, count in references.items())


class ReconciliationService:
    def __init__(
        self,
        store: LedgerStore,
        *,
        policy: ReconciliationPolicy | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or ReconciliationPolicy()
        self.locks = locks if locks is not None else KeyedLock()
        self.repository = LedgerRepository(store)
        self.calculator = BalanceCalculator(store, self.repository)
        self.recorder = TransactionRecorder(store, self.repository, self.calculator)

    # Cached balances --------------------------------------------------

    def _persist_party(self, party_id: int) -> Decimal:
        balance = self.calculator.compute_party_balance(party_id)
        self.store.run(
            "UPDATE parties SET current_balance = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            [balance, party_id],
        )
        return balance

    def _persist_account(self, account_id: int) -> Decimal:
        balance = self.calculator.compute_account_balance(account_id)
        self.store.run(
            "UPDATE accounts SET current_balance = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            [balance, account_id],
        )
        return balance

    def _refresh(self, party_ids: Iterable = (), account_ids: Iterable = ()) -> RecalculationResult:
        result = RecalculationResult()
        for party_id in sorted({pk for pk in party_ids if pk is not None}):
            result.parties[party_id] = self._persist_party(party_id)
        for account_id in sorted({pk for pk in account_ids if pk is not None}):
            result.accounts[account_id] = self._persist_account(account_id)
        return result

    def recalculate_party(self, party_id: int) -> Decimal:
        with self.locks.hold([_party_key(party_id)]), self.store.atomic():
            return self._persist_party(party_id)

    def recalculate_account(self, account_id: int) -> Decimal:
        with self.locks.hold([_account_key(account_id)]), self.store.atomic():
            return self._persist_account(account_id)

    def recalculate_all(
        self,
        *,
        party_id: Optional[int] = None,
        account_id: Optional[int] = None,
    ) -> RecalculationResult:
        """Force cached balances back to their derived values.

        With an id only that party or account is repaired; with neither, every
        live party and account is.
        """

        if party_id is None and account_id is None:
            party_ids = self.repository.live_party_ids()
            account_ids = self.repository.live_account_ids()
        else:
            party_ids = [party_id] if party_id is not None else []
            account_ids = [account_id] if account_id is not None else []
        keys = [_party_key(pk) for pk in party_ids] + [_account_key(pk) for pk in account_ids]
        with self.locks.hold(keys), self.store.atomic():
            result = self._refresh(party_ids, account_ids)
        logger.info(
            "Recalculated %d parties and %d accounts", len(result.parties), len(result.accounts)
        )
        return result

    # Payments ---------------------------------------------------------

    def _check_outstanding(self, amount: Decimal, balance: Decimal) -> None:
        outstanding = abs(balance)
        if amount > outstanding:
            raise ExceedsOutstanding(amount, outstanding)

    def plan_allocations(self, payment: Payment) -> list[tuple[int, Decimal]]:
        """Spread the unallocated part of ``payment`` over open invoices, oldest first."""

        allocated = sum(
            (alloc.amount for alloc in self.repository.allocations_for_payment(payment.id)),
            Decimal("0.00"),
        )
        remaining = payment.amount - allocated
        plan = []
        for invoice in self.repository.open_invoices(payment.invoice_kind, payment.party_id):
            if remaining <= 0:
                break
            take = min(remaining, invoice.balance_amount)
            plan.append((invoice.id, take))
            remaining -= take
        return plan

    def _allocate(self, payment: Payment, explicit: Optional[list]) -> None:
        if explicit is not None:
            self.recorder.allocate(payment, explicit)
        elif self.policy.auto_allocate:
            self.recorder.allocate(payment, self.plan_allocations(payment))

    def apply_payment(self, request: PaymentRequest) -> Payment:
        """Record a new payment, allocate it and refresh the cached balances."""

        if request.payment_type not in PAYMENT_TYPES:
            raise ValueError(f"Unknown payment type {request.payment_type!r}")
        amount = parse_amount(request.amount)
        keys = [_party_key(request.party_id), _account_key(request.account_id)]
        with self.locks.hold(keys), self.store.atomic():
            party = self.repository.get_party(request.party_id)
            check_party_role(party, SALES if request.payment_type == PAYMENT_IN else PURCHASE)
            if request.payment_type == PAYMENT_IN:
                self._check_outstanding(amount, self.calculator.compute_party_balance(request.party_id))
            payment = self._record(request, amount)
            self._refresh([payment.party_id], [payment.account_id])
        logger.info("Applied %s %s", payment.payment_type, payment.payment_number)
        return self.repository.get_payment(payment.id)

    def _record(self, request: PaymentRequest, amount: Decimal) -> Payment:
        payment_id = self.recorder.record_payment(
            request.payment_type,
            request.party_id,
            request.account_id,
            amount,
            request.payment_date or _today(),
            request.meta(),
        )
        payment = self.repository.get_payment(payment_id)
        self._allocate(payment, request.allocations)
        return payment

    def _merge(self, payment: Payment, changes: Mapping[str, Any]) -> dict:
        fields = {
            "party_id": payment.party_id,
            "account_id": payment.account_id,
            "amount": payment.amount,
            "payment_date": payment.payment_date,
            "payment_mode": payment.payment_mode,
            "cheque_number": payment.cheque_number,
            "cheque_date": payment.cheque_date,
            "bank_ref": payment.bank_ref,
            "notes": payment.notes,
        }
        fields.update({key: value for key, value in changes.items() if key in fields})
        return fields

    @staticmethod
    def _edit_keys(payment: Payment, fields: Mapping[str, Any]) -> set:
        return {
            ("payment", payment.id),
            _party_key(payment.party_id),
            _party_key(fields["party_id"]),
            _account_key(payment.account_id),
            _account_key(fields["account_id"]),
        } - {None}

    def edit_payment(self, payment_id: int, changes: Mapping[str, Any]) -> Payment:
        """Reverse a payment completely and apply it again with ``changes``.

        Both payment directions follow the same path: allocations are
        released, audit legs voided, the row rewritten, legs and allocations
        written afresh and every party and account involved before or after
        the edit recomputed.
        """

        changes = dict(changes)
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        while True:
            current = self.repository.get_payment(payment_id)
            keys = self._edit_keys(current, self._merge(current, changes))
            with self.locks.hold(keys):
                # The row may have moved to another party while we waited.
                current = self.repository.get_payment(payment_id)
                fields = self._merge(current, changes)
                if not self._edit_keys(current, fields) <= keys:
                    continue
                with self.store.atomic():
                    updated = self._reapply(current, fields, changes)
                break
        logger.info("Edited %s %s", updated.payment_type, updated.payment_number)
        return updated

    def _reapply(self, current: Payment, fields: dict, changes: Mapping[str, Any]) -> Payment:
        amount = parse_amount(fields["amount"])
        if current.payment_type == PAYMENT_IN and fields["account_id"] is None:
            raise NotFound("Account", None)
        released = self.recorder.release_allocations(current.id)
        self.recorder.void_payment_legs(current.id)
        updated = self.recorder.rewrite_payment(current.id, fields)

        if current.payment_type == PAYMENT_IN and self.policy.enforce_outstanding_on_edit:
            # The rewritten row is fully unallocated; add it back to get the
            # party balance without this payment.
            without = self.calculator.compute_party_balance(updated.party_id) + updated.amount
            self._check_outstanding(amount, without)

        self.recorder.write_payment_legs(updated, description=changes.get("description"))
        if "allocations" in changes and changes["allocations"] is not None:
            self.recorder.allocate(updated, changes["allocations"])
        elif self.policy.auto_allocate:
            self.recorder.allocate(updated, self.plan_allocations(updated))
        elif updated.party_id == current.party_id:
            self.recorder.allocate(updated, self._carry_over(updated, released))

        self._refresh(
            [current.party_id, updated.party_id],
            [current.account_id, updated.account_id],
        )
        return self.repository.get_payment(current.id)

    def _carry_over(self, payment: Payment, released) -> list[tuple[int, Decimal]]:
        """Previous allocations that still fit the edited amount."""

        plan, remaining = [], payment.amount
        for alloc in released:
            invoice = self.repository.get_invoice(alloc.kind, alloc.invoice_id)
            take = min(alloc.amount, invoice.balance_amount, remaining)
            if invoice.is_cancelled or take <= 0:
                continue
            plan.append((invoice.id, take))
            remaining -= take
        return plan

    def delete_payment(self, payment_id: int) -> Payment:
        """Release a payment's allocations and soft-delete it with its legs."""

        current = self.repository.get_payment(payment_id)
        keys = [
            ("payment", payment_id),
            _party_key(current.party_id),
            _account_key(current.account_id),
        ]
        with self.locks.hold(keys), self.store.atomic():
            current = self.repository.get_payment(payment_id)
            self.recorder.release_allocations(payment_id)
            self.recorder.void_payment(payment_id)
            self._refresh([current.party_id], [current.account_id])
        logger.info("Deleted %s %s", current.payment_type, current.payment_number)
        return current

    # Accounts ---------------------------------------------------------

    def adjust_account(
        self,
        account_id: int,
        signed_amount: Any,
        reason: Optional[str] = None,
        when: Any = None,
    ) -> AccountEntry:
        with self.locks.hold([_account_key(account_id)]), self.store.atomic():
            entry_id = self.recorder.record_account_adjustment(
                account_id, signed_amount, reason, when or _today()
            )
            self._refresh(account_ids=[account_id])
        return self.repository.get_account_entry(entry_id)

    def reverse_adjustment(self, transaction_id: int) -> list[AccountEntry]:
        entry = self.repository.get_account_entry(transaction_id)
        if entry is None:
            raise NotFound("Account transaction", transaction_id)
        keys = [_account_key(entry.account_id)]
        partner = None
        if entry.reference_id is not None and entry.reference_type == "transfer":
            partner = self.repository.get_account_entry(entry.reference_id)
            if partner is not None:
                keys.append(_account_key(partner.account_id))
        with self.locks.hold(keys), self.store.atomic():
            reversed_entries = self.recorder.reverse_transaction(transaction_id)
            self._refresh(account_ids=[item.account_id for item in reversed_entries])
        return reversed_entries

    def transfer(
        self,
        source_id: int,
        target_id: int,
        amount: Any,
        description: Optional[str] = None,
        when: Any = None,
    ) -> tuple[AccountEntry, AccountEntry]:
        keys = [_account_key(source_id), _account_key(target_id)]
        with self.locks.hold(keys), self.store.atomic():
            out_id, in_id = self.recorder.record_transfer(
                source_id, target_id, amount, description, when or _today()
            )
            self._refresh(account_ids=[source_id, target_id])
        return self.repository.get_account_entry(out_id), self.repository.get_account_entry(in_id)

    def set_account_opening_balance(self, account_id: int, amount: Any) -> Decimal:
        with self.locks.hold([_account_key(account_id)]), self.store.atomic():
            self.repository.get_account(account_id)
            self.recorder.set_opening_balance("accounts", account_id, amount)
            return self._persist_account(account_id)

    def delete_account(self, account_id: int) -> None:
        """Soft-delete an account nothing live refers to any more."""

        with self.locks.hold([_account_key(account_id)]), self.store.atomic():
            account = self.repository.get_account(account_id)
            references = self.repository.account_references(account_id)
            if references:
                raise InUse(f"Account {account.account_name} still has {_describe(references)}")
            self.store.run(
                "UPDATE accounts SET is_deleted = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
                [True, account_id],
            )

    # Expenses ---------------------------------------------------------

    def create_expense(
        self,
        account_id: int,
        amount: Any,
        description: str,
        expense_date: Any = None,
        **meta: Any,
    ) -> Expense:
        with self.locks.hold([_account_key(account_id)]), self.store.atomic():
            expense_id = self.recorder.record_expense(
                account_id, amount, expense_date or _today(), description, meta
            )
            self._refresh(account_ids=[account_id])
        return self.repository.get_expense(expense_id)

    def edit_expense(self, expense_id: int, changes: Mapping[str, Any]) -> Expense:
        """Rewrite an expense; its debit follows it to a new account or amount."""

        editable = {"account_id", "amount", "expense_date", "description", *EXPENSE_META_FIELDS}
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        while True:
            current = self.repository.get_expense(expense_id)
            target = changes.get("account_id", current.account_id)
            keys = {_account_key(current.account_id), _account_key(target)}
            with self.locks.hold(keys):
                current = self.repository.get_expense(expense_id)
                if _account_key(current.account_id) not in keys:
                    continue
                fields = {
                    "account_id": current.account_id,
                    "amount": current.amount,
                    "expense_date": current.expense_date,
                    "description": current.description,
                    "category": current.category,
                    "payment_mode": current.payment_mode,
                    "bill_number": current.bill_number,
                    "vendor_name": current.vendor_name,
                    "notes": current.notes,
                }
                fields.update(changes)
                with self.store.atomic():
                    self.recorder.void_expense_legs(expense_id)
                    updated = self.recorder.rewrite_expense(expense_id, fields)
                    self.recorder.write_expense_leg(updated)
                    self._refresh(account_ids=[current.account_id, updated.account_id])
                break
        logger.info("Edited expense %s", updated.expense_number)
        return updated

    def delete_expense(self, expense_id: int) -> Expense:
        current = self.repository.get_expense(expense_id)
        with self.locks.hold([_account_key(current.account_id)]), self.store.atomic():
            current = self.repository.get_expense(expense_id)
            self.recorder.void_expense(expense_id)
            self._refresh(account_ids=[current.account_id])
        logger.info("Deleted expense %s", current.expense_number)
        return current

    # Parties and invoices ----------------------------------------------

    def delete_party(self, party_id: int) -> None:
        """Soft-delete a party without live payments or invoices."""

        with self.locks.hold([_party_key(party_id)]), self.store.atomic():
            party = self.repository.get_party(party_id)
            references = self.repository.party_references(party_id)
            if references:
                raise InUse(f"Party {party.name} still has {_describe(references)}")
            self.store.run(
                "UPDATE parties SET is_deleted = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
                [True, party_id],
            )

    def set_party_opening_balance(self, party_id: int, amount: Any) -> Decimal:
        with self.locks.hold([_party_key(party_id)]), self.store.atomic():
            self.repository.get_party(party_id)
            self.recorder.set_opening_balance("parties", party_id, amount)
            return self._persist_party(party_id)

    def create_invoice(
        self,
        kind: str,
        party_id: int,
        total_amount: Any,
        invoice_date: Any = None,
        notes: Optional[str] = None,
        *,
        amount_received: Any = None,
        account_id: Optional[int] = None,
        payment_mode: str = "cash",
    ) -> Invoice:
        """Record an invoice, optionally settled in part when it is raised.

        ``amount_received`` becomes a receipt (a payment out for purchase
        bills) allocated to the new invoice only.
        """

        invoice_date = as_date(invoice_date or _today())
        keys = [_party_key(party_id), _account_key(account_id)]
        with self.locks.hold(keys), self.store.atomic():
            invoice_id = self.recorder.record_invoice(kind, party_id, total_amount, invoice_date, notes)
            if amount_received not in (None, "", 0):
                invoice = self.repository.get_invoice(kind, invoice_id)
                self._record(
                    PaymentRequest(
                        payment_type=PAYMENT_IN if kind == SALES else PAYMENT_OUT,
                        party_id=party_id,
                        account_id=account_id,
                        amount=amount_received,
                        payment_date=invoice_date,
                        payment_mode=payment_mode,
                        description=f"Paid with {invoice.number}",
                        allocations=[(invoice_id, amount_received)],
                    ),
                    parse_amount(amount_received),
                )
            self._refresh([party_id], [account_id])
        return self.repository.get_invoice(kind, invoice_id)

    def _retire_invoice(self, kind: str, invoice_id: int, **flags) -> Invoice:
        invoice = self.repository.get_invoice(kind, invoice_id)
        with self.locks.hold([_party_key(invoice.party_id)]), self.store.atomic():
            invoice = self.repository.get_invoice(kind, invoice_id)
            released = self.recorder.release_invoice_allocations(kind, invoice_id)
            self.recorder.mark_invoice(kind, invoice_id, **flags)
            self._refresh([invoice.party_id])
        if released:
            logger.info(
                "Released %d allocations from %s", len(released), invoice.number
            )
        return invoice

    def cancel_invoice(self, kind: str, invoice_id: int) -> Invoice:
        """Cancel an invoice; payments allocated to it become unallocated."""

        self._retire_invoice(kind, invoice_id, cancelled=True)
        return self.repository.get_invoice(kind, invoice_id)

    def delete_invoice(self, kind: str, invoice_id: int) -> Invoice:
        return self._retire_invoice(kind, invoice_id, deleted=True)

    def party_balance(self, party_id: int):
        return self.calculator.party_components(party_id)

    def party_overdue(self, party_id: int, as_of: Optional[date] = None):
        return self.calculator.party_overdue(party_id, as_of)

    def overdue_by_party(self, as_of: Optional[date] = None):
        return self.calculator.overdue_by_party(as_of)

    def summary(self):
        return self.calculator.summary()


def get_reconciliation_service(policy: ReconciliationPolicy | None = None) -> ReconciliationService:
    """Build a service bound to the configured database alias."""

    return ReconciliationService(
        LedgerStore(ledger_settings()["DATABASE_ALIAS"]),
        policy=policy or ReconciliationPolicy.from_settings(),
        locks=process_locks,
    )


__all__ = [
    "PaymentRequest",
    "ReconciliationPolicy",
    "ReconciliationService",
    "RecalculationResult",
    "get_reconciliation_service",
]
