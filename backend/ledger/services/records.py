"""Typed records mapped from raw ledger rows.

Rows coming back from :class:`~ledger.services.store.LedgerStore` are plain
dictionaries whose value types depend on the database backend (SQLite returns
dates as text and booleans as integers).  Everything the services reason about
is converted here, once, and a ``NULL`` in a column that must hold a value is
reported as :class:`~ledger.exceptions.StoreFailure` instead of being read as 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from django.utils.dateparse import parse_date

from ..exceptions import StoreFailure
from .money import to_money

PAYMENT_IN = "payment_in"
PAYMENT_OUT = "payment_out"
PAYMENT_TYPES = (PAYMENT_IN, PAYMENT_OUT)

SALES = "sales"
PURCHASE = "purchase"
INVOICE_KINDS = (SALES, PURCHASE)

CREDIT = "credit"
DEBIT = "debit"

CUSTOMER = "customer"
SUPPLIER = "supplier"
BOTH = "both"


def _required(row: Mapping[str, Any], column: str) -> Any:
    try:
        value = row[column]
    except KeyError:
        raise StoreFailure(f"Column {column!r} missing from ledger row")
    if value is None:
        raise StoreFailure(f"Column {column!r} is unexpectedly NULL")
    return value


def _money(row: Mapping[str, Any], column: str) -> Decimal:
    return to_money(_required(row, column))


def _optional_money(row: Mapping[str, Any], column: str) -> Optional[Decimal]:
    value = row.get(column)
    return None if value is None else to_money(value)


def stored_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value)[:10])
    if parsed is None:
        raise StoreFailure(f"Unparseable date {value!r} in ledger row")
    return parsed


def _date(row: Mapping[str, Any], column: str) -> date:
    return stored_date(_required(row, column))


def _optional_date(row: Mapping[str, Any], column: str) -> Optional[date]:
    value = row.get(column)
    return None if value in (None, "") else stored_date(value)


def _flag(row: Mapping[str, Any], column: str) -> bool:
    return bool(_required(row, column))


def _optional_int(row: Mapping[str, Any], column: str) -> Optional[int]:
    value = row.get(column)
    return None if value is None else int(value)


@dataclass(frozen=True)
class Party:
    id: int
    name: str
    party_type: str
    opening_balance: Decimal
    current_balance: Decimal
    min_due_days: int
    is_deleted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Party":
        return cls(
            id=int(_required(row, "id")),
            name=_required(row, "name"),
            party_type=_required(row, "party_type"),
            opening_balance=_money(row, "opening_balance"),
            current_balance=_money(row, "current_balance"),
            min_due_days=int(_required(row, "min_due_days")),
            is_deleted=_flag(row, "is_deleted"),
        )

    @property
    def is_customer(self) -> bool:
        return self.party_type in (CUSTOMER, BOTH)

    @property
    def is_supplier(self) -> bool:
        return self.party_type in (SUPPLIER, BOTH)


@dataclass(frozen=True)
class Account:
    id: int
    account_name: str
    account_type: str
    opening_balance: Decimal
    current_balance: Decimal
    is_deleted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        return cls(
            id=int(_required(row, "id")),
            account_name=_required(row, "account_name"),
            account_type=_required(row, "account_type"),
            opening_balance=_money(row, "opening_balance"),
            current_balance=_money(row, "current_balance"),
            is_deleted=_flag(row, "is_deleted"),
        )


@dataclass(frozen=True)
class Invoice:
    """A sales invoice or a purchase bill, told apart by ``kind``."""

    kind: str
    id: int
    number: str
    party_id: int
    invoice_date: date
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    is_cancelled: bool
    is_deleted: bool

    @classmethod
    def from_row(cls, kind: str, row: Mapping[str, Any]) -> "Invoice":
        return cls(
            kind=kind,
            id=int(_required(row, "id")),
            number=_required(row, "number"),
            party_id=int(_required(row, "party_id")),
            invoice_date=_date(row, "invoice_date"),
            total_amount=_money(row, "total_amount"),
            paid_amount=_money(row, "paid_amount"),
            balance_amount=_money(row, "balance_amount"),
            is_cancelled=_flag(row, "is_cancelled"),
            is_deleted=_flag(row, "is_deleted"),
        )

    @property
    def is_open(self) -> bool:
        return not (self.is_cancelled or self.is_deleted) and self.balance_amount > 0


@dataclass(frozen=True)
class Payment:
    id: int
    payment_type: str
    payment_number: str
    payment_date: date
    party_id: int
    account_id: Optional[int]
    amount: Decimal
    payment_mode: str
    cheque_number: Optional[str]
    cheque_date: Optional[date]
    bank_ref: Optional[str]
    notes: Optional[str]
    is_deleted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Payment":
        return cls(
            id=int(_required(row, "id")),
            payment_type=_required(row, "payment_type"),
            payment_number=_required(row, "payment_number"),
            payment_date=_date(row, "payment_date"),
            party_id=int(_required(row, "party_id")),
            account_id=_optional_int(row, "account_id"),
            amount=_money(row, "amount"),
            payment_mode=_required(row, "payment_mode"),
            cheque_number=row.get("cheque_number"),
            cheque_date=_optional_date(row, "cheque_date"),
            bank_ref=row.get("bank_ref"),
            notes=row.get("notes"),
            is_deleted=_flag(row, "is_deleted"),
        )

    @property
    def invoice_kind(self) -> str:
        """Receipts settle sales invoices, payments out settle purchase bills."""
        return SALES if self.payment_type == PAYMENT_IN else PURCHASE

    @property
    def account_direction(self) -> str:
        return CREDIT if self.payment_type == PAYMENT_IN else DEBIT


@dataclass(frozen=True)
class Allocation:
    id: int
    payment_id: int
    kind: str
    invoice_id: int
    amount: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Allocation":
        sales_invoice_id = _optional_int(row, "sales_invoice_id")
        purchase_invoice_id = _optional_int(row, "purchase_invoice_id")
        if (sales_invoice_id is None) == (purchase_invoice_id is None):
            raise StoreFailure(
                f"Payment detail {row.get('id')} must reference exactly one invoice"
            )
        if sales_invoice_id is not None:
            kind, invoice_id = SALES, sales_invoice_id
        else:
            kind, invoice_id = PURCHASE, purchase_invoice_id
        return cls(
            id=int(_required(row, "id")),
            payment_id=int(_required(row, "payment_id")),
            kind=kind,
            invoice_id=invoice_id,
            amount=_money(row, "amount"),
        )


@dataclass(frozen=True)
class AccountEntry:
    id: int
    account_id: int
    reference_type: Optional[str]
    reference_id: Optional[int]
    transaction_type: str
    amount: Decimal
    balance_before: Optional[Decimal]
    balance_after: Optional[Decimal]
    transaction_date: date
    description: Optional[str]
    is_deleted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AccountEntry":
        return cls(
            id=int(_required(row, "id")),
            account_id=int(_required(row, "account_id")),
            reference_type=row.get("reference_type"),
            reference_id=_optional_int(row, "reference_id"),
            transaction_type=_required(row, "transaction_type"),
            amount=_money(row, "amount"),
            balance_before=_optional_money(row, "balance_before"),
            balance_after=_optional_money(row, "balance_after"),
            transaction_date=_date(row, "transaction_date"),
            description=row.get("description"),
            is_deleted=_flag(row, "is_deleted"),
        )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.transaction_type == CREDIT else -self.amount


@dataclass(frozen=True)
class Expense:
    id: int
    expense_number: str
    expense_date: date
    account_id: int
    amount: Decimal
    category: Optional[str]
    description: str
    payment_mode: str
    bill_number: Optional[str]
    vendor_name: Optional[str]
    notes: Optional[str]
    is_deleted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Expense":
        return cls(
            id=int(_required(row, "id")),
            expense_number=_required(row, "expense_number"),
            expense_date=_date(row, "expense_date"),
            account_id=int(_required(row, "account_id")),
            amount=_money(row, "amount"),
            category=row.get("category"),
            description=_required(row, "description"),
            payment_mode=_required(row, "payment_mode"),
            bill_number=row.get("bill_number"),
            vendor_name=row.get("vendor_name"),
            notes=row.get("notes"),
            is_deleted=_flag(row, "is_deleted"),
        )
