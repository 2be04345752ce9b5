"""Typed failures raised by the reconciliation services.

Views turn these into API responses; nothing in the service layer catches
them.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for every recoverable ledger failure."""

    code = "ledger_error"


class NotFound(LedgerError):
    """Raised for an unknown (or soft-deleted) party, account, payment or invoice."""

    code = "not_found"

    def __init__(self, entity: str, pk) -> None:
        self.entity = entity
        self.pk = pk
        super().__init__(f"{entity} {pk} not found")


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class ExceedsOutstanding(LedgerError):
    """Raised when a new receipt is larger than what the party owes."""

    code = "exceeds_outstanding"

    def __init__(self, amount: Decimal, outstanding: Decimal) -> None:
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment amount {amount} cannot exceed outstanding balance of {outstanding}"
        )


class InvalidAllocation(LedgerError):
    code = "invalid_allocation"


class NotReversible(LedgerError):
    code = "not_reversible"


class StoreFailure(LedgerError):
    """The underlying query failed or returned a row that cannot be mapped."""

    code = "store_failure"


class WrongPartyType(LedgerError):
    """A customer was given a purchase bill or payment out, or a supplier a sale or receipt."""

    code = "wrong_party_type"


class InUse(LedgerError):
    """Raised when deleting a party or account that live ledger rows still reference."""

    code = "in_use"
